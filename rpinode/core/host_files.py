"""Line-oriented host file edits: atomic writes, kernel cmdline, module blacklist."""
import os
import shutil
import tempfile
from pathlib import Path
from typing import Iterable, Union

from rpinode.core.logger import get_logger

logger = get_logger(__name__)

PathLike = Union[str, Path]

ENCODING = "utf-8"
# Bytes that are not valid UTF-8 survive a read/write cycle unchanged
ERRORS = "surrogateescape"


def read_text(path: PathLike) -> str:
    return Path(path).read_bytes().decode(ENCODING, ERRORS)


def atomic_write_bytes(path: PathLike, data: bytes) -> None:
    """Replace a file's contents without ever exposing a partial write.

    The new content goes to a temporary file in the same directory, is
    flushed to disk and then renamed over the target. An existing target's
    permission bits are carried over; new files get 0644.

    Args:
        path: File to write
        data: Full new contents
    """
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", dir=target.parent)
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        if target.exists():
            shutil.copymode(target, tmp_name)
        else:
            os.chmod(tmp_name, 0o644)
        os.replace(tmp_name, target)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


def atomic_write_text(path: PathLike, text: str) -> None:
    atomic_write_bytes(path, text.encode(ENCODING, ERRORS))


def atomic_copy(source: PathLike, target: PathLike) -> None:
    """Byte-exact copy of source onto target with the same atomic guarantee."""
    atomic_write_bytes(target, Path(source).read_bytes())


class CmdlineEditor:
    """Appends kernel parameters to the single-line boot command line."""

    def __init__(self, cmdline_path: PathLike):
        self.cmdline_path = Path(cmdline_path)

    def is_applied(self, sentinel: str) -> bool:
        """Return True when the sentinel token is already on the command line."""
        if not self.cmdline_path.exists():
            return False
        return sentinel in read_text(self.cmdline_path)

    def apply(self, tokens: Iterable[str], sentinel: str) -> bool:
        """Append tokens to the last line once.

        Args:
            tokens: Kernel parameters to add
            sentinel: Substring whose presence means the tokens were added before

        Returns:
            True if the file was modified, False if already applied
        """
        if self.is_applied(sentinel):
            return False

        content = read_text(self.cmdline_path)
        addition = " ".join(tokens)

        body = content.rstrip("\r\n")
        trailer = content[len(body):]
        updated = f"{body} {addition}" if body else addition
        atomic_write_text(self.cmdline_path, updated + trailer)
        logger.debug(f"Appended '{addition}' to {self.cmdline_path}")
        return True


class ModuleBlacklist:
    """Writes the kernel module blacklist if it does not exist yet."""

    def __init__(self, blacklist_path: PathLike):
        self.blacklist_path = Path(blacklist_path)

    def exists(self) -> bool:
        return self.blacklist_path.exists()

    def ensure(self, content: str) -> bool:
        """Create the blacklist file verbatim.

        An existing file is never merged or rewritten.

        Returns:
            True if the file was created
        """
        if self.exists():
            return False
        atomic_write_text(self.blacklist_path, content)
        return True
