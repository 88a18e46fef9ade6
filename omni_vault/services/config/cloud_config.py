from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


@dataclass(frozen=True)
class CloudConfig:
    """Provisioning and privilege-escalation settings for the cloud tier.

    The MFA code is a one-time value, so it is kept out of the repr.
    """

    owner_arn: str
    terraform_dir: Path = Path("infra/terraform")
    auto_approve: bool = False
    mfa_serial: Optional[str] = None
    mfa_code: Optional[str] = field(default=None, repr=False)

    @property
    def escalation_requested(self) -> bool:
        return bool(self.mfa_serial and self.mfa_code)

    @staticmethod
    def from_env() -> "CloudConfig":
        owner_arn = os.getenv("OMNI_OWNER_ARN")
        if not owner_arn:
            raise ValueError("Missing required environment variable: OMNI_OWNER_ARN")

        return CloudConfig(
            owner_arn=owner_arn,
            terraform_dir=Path(os.getenv("OMNI_TERRAFORM_DIR", "infra/terraform")),
            auto_approve=os.getenv("OMNI_AUTO_APPROVE", "") == "1",
            mfa_serial=os.getenv("OMNI_MFA_SERIAL") or None,
            mfa_code=os.getenv("OMNI_MFA_CODE") or None,
        )
