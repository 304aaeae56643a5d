"""
System clipboard and desktop notifications via platform command line tools.

macOS: pbcopy / osascript
Windows: clip / PowerShell balloon tip
Linux: wl-copy or xclip / notify-send
"""
import asyncio
import logging
import shutil
import sys
from typing import List, Optional

logger = logging.getLogger(__name__)


class DesktopError(RuntimeError):
    """Raised when no working clipboard/notification tool is available."""


def _clipboard_command() -> List[str]:
    if sys.platform == "darwin":
        return ["pbcopy"]
    if sys.platform == "win32":
        return ["clip"]
    if shutil.which("wl-copy"):
        return ["wl-copy"]
    if shutil.which("xclip"):
        return ["xclip", "-selection", "clipboard"]
    if shutil.which("xsel"):
        return ["xsel", "--clipboard", "--input"]
    raise DesktopError("no clipboard tool found (install wl-clipboard, xclip or xsel)")


def _notification_command(title: str, body: str) -> Optional[List[str]]:
    if sys.platform == "darwin":
        safe_title = title.replace('"', "'")
        safe_body = body.replace('"', "'")
        return ["osascript", "-e", f'display notification "{safe_body}" with title "{safe_title}"']
    if sys.platform == "win32":
        safe_title = title.replace('"', "'")
        safe_body = body.replace('"', "'")
        ps = (
            "Add-Type -AssemblyName System.Windows.Forms;"
            "$n=New-Object System.Windows.Forms.NotifyIcon;"
            "$n.Icon=[System.Drawing.SystemIcons]::Information;"
            "$n.Visible=$true;"
            f'$n.ShowBalloonTip(4000,"{safe_title}","{safe_body}",'
            "[System.Windows.Forms.ToolTipIcon]::Info)"
        )
        return ["powershell", "-WindowStyle", "Hidden", "-Command", ps]
    if shutil.which("notify-send"):
        return ["notify-send", title, body]
    return None


async def _run(command: List[str], stdin: Optional[bytes] = None) -> int:
    process = await asyncio.create_subprocess_exec(
        *command,
        stdin=asyncio.subprocess.PIPE if stdin is not None else asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.DEVNULL,
        stderr=asyncio.subprocess.DEVNULL,
    )
    await process.communicate(stdin)
    return process.returncode


class SystemClipboard:
    """Implements IClipboard protocol."""

    async def copy(self, text: str) -> None:
        command = _clipboard_command()
        returncode = await _run(command, stdin=text.encode("utf-8"))
        if returncode != 0:
            raise DesktopError(f"{command[0]} exited with status {returncode}")


class SystemNotifier:
    """Implements INotifier protocol."""

    async def notify(self, title: str, body: str, url: Optional[str] = None) -> bool:
        command = _notification_command(title, body)
        if command is None:
            logger.info("Notifications not supported on this system")
            return False
        returncode = await _run(command)
        if returncode != 0:
            logger.warning("%s exited with status %d", command[0], returncode)
            return False
        return True
