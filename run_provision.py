"""
Simple CIS provisioning runner.
Runs the login-time provisioning for one Auth0 user record, outside of Auth0.
"""
import argparse
import asyncio
import json

from cis_provisioner import HostGlobals, provision
from cis_provisioner.config import load_config
from cis_provisioner.models import Identity, LoginContext
from cis_provisioner.stores import LoggingMetadataStore, ManagementApiMetadataStore


def main():
    parser = argparse.ArgumentParser(description="Provision an Auth0 user into CIS")
    parser.add_argument("user_file", help="JSON file holding the Auth0 user record")
    parser.add_argument("--connection-strategy", help="Defaults to the first identity's connection")
    parser.add_argument("--primary-user", help="Primary account id when the user is linked")
    parser.add_argument("--config-file", help="Optional JSON file with configuration keys")
    parser.add_argument("--environment", help="Selects envs/.env.<environment>")
    parser.add_argument("--dry-run", action="store_true", help="Log the existsInCIS update instead of sending it")
    args = parser.parse_args()

    config = load_config(config_file=args.config_file, environment=args.environment)
    config.setup_logging()
    configuration = config.as_configuration()

    with open(args.user_file, "r", encoding="utf-8") as fh:
        user = json.load(fh)

    identities = user.get("identities") or [{}]
    context = {
        "connectionStrategy": args.connection_strategy or identities[0].get("connection", ""),
    }
    if args.primary_user:
        context["primaryUser"] = args.primary_user

    management_url = configuration.get("auth0_management_url")
    management_token = configuration.get("auth0_management_token")
    if args.dry_run or not (management_url and management_token):
        store = LoggingMetadataStore()
    else:
        store = ManagementApiMetadataStore(management_url, management_token)

    outcome = asyncio.run(
        provision(Identity.from_dict(user), LoginContext.from_dict(context), configuration,
                  HostGlobals(metadata_store=store))
    )
    print("Provisioning outcome:", outcome.value)


if __name__ == "__main__":
    main()
