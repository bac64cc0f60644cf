"""
Configuration management for the CIS provisioner.
"""

from .config_loader import ConfigLoader, load_config, setup_logging
from .settings import ProvisioningSettings, validate_configuration

__all__ = ["ConfigLoader", "ProvisioningSettings", "load_config", "setup_logging", "validate_configuration"]
