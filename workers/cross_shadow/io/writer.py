"""
Writer — serialize run receipts to JSON files.

Filesystem layout per run:
    <receipts_root>/<run_id>/run_receipt.json
    <receipts_root>/<run_id>/stdout.log     (captured runs only)
    <receipts_root>/<run_id>/stderr.log     (captured runs only)
"""
import json
from pathlib import Path
from typing import Optional

from cross_shadow.io.schema import RunReceipt


def write_receipt(
    receipt: RunReceipt,
    receipts_root: Path,
    stdout: Optional[str] = None,
    stderr: Optional[str] = None,
) -> Path:
    """
    Write run_receipt.json (and any captured logs) under
    ``receipts_root / receipt.run_id``.

    Log paths are recorded on ``receipt.invocation`` before the receipt
    is serialized.  Returns the receipt file path.
    """
    run_dir = Path(receipts_root) / receipt.run_id
    run_dir.mkdir(parents=True, exist_ok=True)

    # Only write log files if they have content
    if receipt.invocation is not None:
        if stdout:
            (run_dir / "stdout.log").write_text(stdout, encoding="utf-8")
            receipt.invocation.stdout_path_rel = "stdout.log"
        if stderr:
            (run_dir / "stderr.log").write_text(stderr, encoding="utf-8")
            receipt.invocation.stderr_path_rel = "stderr.log"

    receipt_path = run_dir / "run_receipt.json"
    receipt_path.write_text(
        json.dumps(
            receipt.model_dump(mode="json"),
            indent=2,
            sort_keys=True,
        )
        + "\n",
        encoding="utf-8",
    )
    return receipt_path
