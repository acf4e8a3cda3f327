from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import List

LOG = logging.getLogger(__name__)

ENCRYPTORS = ("openssl", "gpg")


def build_command(encryptor: str, in_path: Path, out_path: Path, base64: bool = False, salt: bool = False) -> List[str]:
    if encryptor == "openssl":
        command = ["openssl", "aes-256-cbc", "-d"]
        if base64:
            command.append("-base64")
        if salt:
            command.append("-salt")
        return command + ["-in", str(in_path), "-out", str(out_path)]
    if encryptor == "gpg":
        return ["gpg", "-o", str(out_path), "-d", str(in_path)]
    raise ValueError(f"Unknown encryptor '{encryptor}'. Choose from: {', '.join(ENCRYPTORS)}")


def decrypt(encryptor: str, in_path: Path, out_path: Path, base64: bool = False, salt: bool = False) -> int:
    command = build_command(encryptor, in_path, out_path, base64=base64, salt=salt)
    LOG.info("Decrypting %s to %s with %s", in_path, out_path, encryptor)
    try:
        return subprocess.run(command, check=False).returncode
    except FileNotFoundError:
        LOG.error("The %s executable was not found on PATH", encryptor)
        return 127
