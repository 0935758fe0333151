"""
Device code generation and management.
Ensures each screen has a stable, human-readable code.
"""

import uuid
from pathlib import Path


def generate_device_code() -> str:
    """New code in the form DEV-1A2B3C4D."""
    return f"DEV-{uuid.uuid4().hex[:8].upper()}"


def get_or_create_device_code(config_dir: str) -> str:
    """
    Get the existing device code or create a new one.

    The code is stored in device_code.txt inside the config directory so it
    survives reboots.
    """
    code_file = Path(config_dir) / "device_code.txt"

    # Check if a code already exists
    if code_file.exists():
        device_code = code_file.read_text().strip()
        if device_code:
            return device_code

    device_code = generate_device_code()

    code_file.parent.mkdir(parents=True, exist_ok=True)
    code_file.write_text(device_code)

    return device_code
