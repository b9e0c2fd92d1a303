"""Hand the rendered summary to the system ``mail`` command."""

from __future__ import annotations

import logging
import shutil
import subprocess
from typing import Callable, Optional

_LOGGER = logging.getLogger(__name__)

Runner = Callable[..., "subprocess.CompletedProcess[str]"]


def send_summary(
    text: str,
    *,
    subject: str,
    address: Optional[str],
    mailer: str = "mail",
    run: Runner = subprocess.run,
) -> bool:
    """Mail *text* to *address*; returns whether the mailer accepted it.

    Delivery is skipped when no address is configured or the mailer is not
    on ``PATH``.
    """

    if not address:
        _LOGGER.debug("No notification address configured; summary not mailed")
        return False
    executable = shutil.which(mailer)
    if executable is None:
        _LOGGER.warning("Mail command '%s' not found; summary not sent to %s", mailer, address)
        return False

    result = run(
        [executable, "-s", subject, address],
        input=text,
        text=True,
        capture_output=True,
        check=False,
    )
    if result.returncode != 0:
        _LOGGER.warning(
            "Mail command exited with code %d: %s", result.returncode, (result.stderr or "").strip()
        )
        return False
    _LOGGER.info("Summary mailed to %s", address)
    return True


def completion_subject(job_id: str) -> str:
    return f"CFD Batch Job Complete - {job_id}"


def failure_subject(job_id: str) -> str:
    return f"CFD Batch Job Failed - {job_id}"


__all__ = ["completion_subject", "failure_subject", "send_summary"]
