from __future__ import annotations

import asyncio
import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from omni_vault.services.errors import ProvisioningError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProvisioningVariables:
    region: str
    bucket_name: str
    owner_arn: str

    def as_cli_args(self) -> list[str]:
        return [
            f"-var=region={self.region}",
            f"-var=bucket_name={self.bucket_name}",
            f"-var=owner_arn={self.owner_arn}",
        ]


class TerraformSetupService:
    """Provisioning helper for the Object Lock bucket.

    Runs `terraform init` + `terraform apply` against the module in
    `terraform_dir`. Each step is synchronous from the caller's point of view
    and is not retried: a non-zero exit raises `ProvisioningError`.
    """

    _PLAN_NO_CHANGES = 0
    _PLAN_HAS_CHANGES = 2

    def __init__(self, *, terraform_dir: Path, binary: str = "terraform") -> None:
        self._terraform_dir = terraform_dir
        self._binary = binary

    def _require_binary(self) -> str:
        resolved = shutil.which(self._binary)
        if not resolved:
            raise ProvisioningError(f"{self._binary} not found. Install Terraform before using cloud mode.")
        return resolved

    async def _run(self, *args: str, interactive: bool = False) -> tuple[int, str]:
        """Run terraform in `terraform_dir`.

        Interactive runs inherit the caller's stdin/stdout so the operator sees
        the plan and answers the approval prompt; their output is not captured.
        """

        binary = self._require_binary()
        if not self._terraform_dir.is_dir():
            raise ProvisioningError(f"Terraform directory not found: {self._terraform_dir}")

        logger.info("Running: terraform %s", " ".join(args))
        try:
            proc = await asyncio.create_subprocess_exec(
                binary,
                *args,
                cwd=str(self._terraform_dir),
                stdout=None if interactive else asyncio.subprocess.PIPE,
                stderr=None if interactive else asyncio.subprocess.STDOUT,
            )
            stdout, _ = await proc.communicate()
        except OSError as exc:
            raise ProvisioningError(f"Failed to start terraform {args[0]}") from exc

        output = stdout.decode("utf-8", errors="replace") if stdout else ""
        return proc.returncode if proc.returncode is not None else -1, output

    async def init(self) -> None:
        code, output = await self._run("init", "-input=false")
        if code != 0:
            raise ProvisioningError(f"terraform init failed (exit {code}): {output[-2000:]}".strip())

    async def apply(self, variables: ProvisioningVariables, *, auto_approve: bool = False) -> None:
        # `-input=false` without `-auto-approve` makes terraform refuse to apply.
        if auto_approve:
            args = ["apply", "-input=false", "-auto-approve"]
        else:
            args = ["apply"]
        args.extend(variables.as_cli_args())

        code, output = await self._run(*args, interactive=not auto_approve)
        if code != 0:
            raise ProvisioningError(f"terraform apply failed (exit {code}): {output[-2000:]}".strip())

    async def provision(self, variables: ProvisioningVariables, *, auto_approve: bool = False) -> None:
        logger.info(
            "Provisioning bucket %s (region: %s)",
            variables.bucket_name,
            variables.region,
        )
        await self.init()
        await self.apply(variables, auto_approve=auto_approve)
        logger.info("Provisioning complete for bucket %s", variables.bucket_name)

    async def check_idempotent(self, variables: ProvisioningVariables) -> bool:
        """True when re-applying the same variables would change nothing."""

        code, output = await self._run("plan", "-input=false", "-detailed-exitcode", *variables.as_cli_args())
        if code == self._PLAN_NO_CHANGES:
            return True
        if code == self._PLAN_HAS_CHANGES:
            return False
        raise ProvisioningError(f"terraform plan failed (exit {code}): {output[-2000:]}".strip())


def variables_for(*, region: Optional[str], bucket_name: str, owner_arn: str) -> ProvisioningVariables:
    if not bucket_name or not owner_arn:
        raise ProvisioningError("bucket name and owner ARN are required for cloud provisioning")
    return ProvisioningVariables(region=region or "us-east-1", bucket_name=bucket_name, owner_arn=owner_arn)
