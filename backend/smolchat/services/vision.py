"""Runner for the external multimodal (vision) generation CLI."""

from __future__ import annotations

import asyncio
import logging
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Sequence

from smolchat.config.settings import Settings
from smolchat.observability.metrics import record_external_call
from smolchat.utils.exceptions import VisionProcessError

logger = logging.getLogger(__name__)

_STDERR_TAIL = 2000


@dataclass(slots=True)
class ProcessResult:
    """Captured outcome of one vision CLI invocation."""

    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class VisionRunner:
    """Invoke ``llama-mtmd-cli`` with a structured argument vector.

    Each call is an independent OS process, so vision requests never contend
    with the in-process generation session.
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    @property
    def cli_path(self) -> str:
        return self._settings.vision_cli_path

    def build_args(
        self,
        prompt: str,
        images: Sequence[Path],
        temperature: float,
        max_tokens: int,
    ) -> list[str]:
        args = [
            self._settings.vision_cli_path,
            "-m",
            self._settings.vision_model_path,
            "--mmproj",
            self._settings.vision_mmproj_path,
        ]
        for image in images:
            args.extend(["--image", str(image)])
        args.extend(
            [
                "-p",
                prompt,
                "--n-gpu-layers",
                str(self._settings.vision_gpu_layers),
                "--temp",
                str(temperature),
                "-n",
                str(max_tokens),
            ]
        )
        return args

    def run(
        self,
        prompt: str,
        images: Sequence[Path],
        temperature: float,
        max_tokens: int,
    ) -> ProcessResult:
        """Run the CLI to completion and return its captured output.

        Raises:
            VisionProcessError: If the binary cannot be started, times out or
                exits with a non-zero status
        """
        args = self.build_args(prompt, images, temperature, max_tokens)
        logger.info(
            "Running vision generation (%d image(s), temp=%s, max_tokens=%d)",
            len(images),
            temperature,
            max_tokens,
        )
        logger.debug("Vision argv: %s", args[:-7] + ["<prompt>"] + args[-6:])

        start = time.perf_counter()
        try:
            completed = subprocess.run(
                args,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=self._settings.vision_timeout_seconds,
                check=False,
            )
        except FileNotFoundError as exc:
            record_external_call("vision", time.perf_counter() - start, success=False)
            raise VisionProcessError(
                f"Vision CLI not found: {self.cli_path}",
                cause=exc,
            ) from exc
        except subprocess.TimeoutExpired as exc:
            record_external_call("vision", time.perf_counter() - start, success=False)
            raise VisionProcessError(
                f"Vision CLI timed out after {exc.timeout}s",
                cause=exc,
            ) from exc
        except OSError as exc:
            record_external_call("vision", time.perf_counter() - start, success=False)
            raise VisionProcessError(f"Failed to start vision CLI: {exc}", cause=exc) from exc

        duration = time.perf_counter() - start
        result = ProcessResult(completed.returncode, completed.stdout or "", completed.stderr or "")
        record_external_call("vision", duration, success=result.ok)

        if not result.ok:
            logger.error("Vision CLI exited with status %d", result.returncode)
            raise VisionProcessError(
                f"Vision CLI exited with status {result.returncode}",
                details={"returncode": result.returncode, "stderr": result.stderr[-_STDERR_TAIL:]},
            )

        logger.info("Vision generation finished in %.2fs (%d chars)", duration, len(result.stdout))
        return result

    async def arun(
        self,
        prompt: str,
        images: Sequence[Path],
        temperature: float,
        max_tokens: int,
    ) -> ProcessResult:
        return await asyncio.to_thread(self.run, prompt, list(images), temperature, max_tokens)

    def version(self) -> Optional[str]:
        """Return the CLI's ``--version`` banner, or ``None`` when unavailable."""
        try:
            completed = subprocess.run(
                [self.cli_path, "--version"],
                capture_output=True,
                text=True,
                errors="replace",
                timeout=30,
                check=False,
            )
        except (OSError, subprocess.TimeoutExpired) as exc:
            logger.warning("Vision CLI version check failed: %s", exc)
            return None

        # llama.cpp tools print the build banner on stderr
        banner = (completed.stdout + completed.stderr).strip()
        return banner or None

    def check_files(self) -> Dict[str, bool]:
        """Report which of the CLI, model and projector files exist."""
        return {
            "cli": Path(self._settings.vision_cli_path).is_file(),
            "model": Path(self._settings.vision_model_path).is_file(),
            "mmproj": Path(self._settings.vision_mmproj_path).is_file(),
        }
