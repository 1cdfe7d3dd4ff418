"""Review-plan hook command for the Lightsprint CLI"""

from pathlib import Path
from typing import Optional

import click

from lightsprint.common.context import LightsprintContext
from lightsprint.hooks.plan_review import review_plan as run_review


@click.command(name="review-plan")
@click.argument("input_file", required=False, type=click.Path(dir_okay=False))
@click.pass_obj
def review_plan(obj: LightsprintContext, input_file: Optional[str]) -> None:
    """Review an implementation plan in the browser (Claude Code hook)

    Reads the PermissionRequest payload from INPUT_FILE, or from stdin when
    omitted, and prints exactly one decision object. Always exits 0.
    """
    logger = obj.logger("review_plan")
    try:
        # Undecodable bytes are replaced; the payload parser decides what is usable
        if input_file:
            raw = Path(input_file).read_text(encoding="utf-8", errors="replace")
            logger.info(f"Input read from {input_file} ({len(raw)} chars)")
        else:
            raw = click.get_binary_stream("stdin").read().decode("utf-8", "replace")
            logger.info(f"Stdin received ({len(raw)} chars)")
    except (OSError, ValueError) as e:
        logger.error(f"Failed to read input: {e}")
        raw = ""

    run_review(obj, raw)
