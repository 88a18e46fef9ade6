"""Configuration package (Facade).

Re-exports the public config types so callers import from one stable path:

	from omni_vault.services.config import VaultConfig

The individual modules stay free to move around without touching call sites.
"""

from omni_vault.services.config.bootstrap_config import BootstrapConfig, BootstrapMode
from omni_vault.services.config.cloud_config import CloudConfig
from omni_vault.services.config.s3_config import S3Config
from omni_vault.services.config.vault_config import VaultConfig, ensure_owner_secret, generate_owner_secret

__all__ = [
	"BootstrapConfig",
	"BootstrapMode",
	"CloudConfig",
	"S3Config",
	"VaultConfig",
	"ensure_owner_secret",
	"generate_owner_secret",
]
