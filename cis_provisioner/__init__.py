"""
CIS Provisioner
Creates a person profile in CIS the first time a user logs in, without ever
failing the login itself.
"""
__version__ = "1.0.0"

from .pipeline import HostGlobals, ProvisioningOutcome, handle_login, provision, run_rule

__all__ = ["HostGlobals", "ProvisioningOutcome", "handle_login", "provision", "run_rule"]
