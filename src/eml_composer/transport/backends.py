"""
Concrete delivery backends: local sendmail, SMTP session, user callback.
"""

import shutil
import smtplib
import subprocess
from typing import Callable, List, Optional, Sequence, Union

from ..errors import TransportError
from .base import Transport


SENDMAIL_CANDIDATES = ("/usr/lib/sendmail", "/usr/sbin/sendmail", "sendmail")


def find_sendmail() -> Optional[str]:
    """
    Locate a sendmail-compatible program.

    Returns:
        Executable path, or None when none is installed
    """
    for candidate in SENDMAIL_CANDIDATES:
        found = shutil.which(candidate)
        if found:
            return found
    return None


# ============================================================================
# SENDMAIL
# ============================================================================

class SendmailTransport(Transport):
    """
    Hands the message to a local mail-submission program on stdin.

    With recipients, they are passed as arguments after ``--``; without, the
    program is run with ``-t`` and reads them from the headers.
    """

    name = "sendmail"

    def __init__(
        self,
        command: Optional[Union[str, Sequence[str]]] = None,
        options: Sequence[str] = ("-oi", "-oem"),
        timeout: Optional[float] = 60,
    ):
        super().__init__()
        if isinstance(command, str):
            command = command.split()
        self.command = list(command) if command else None
        self.options = list(options)
        self.timeout = timeout

    def build_command(self, recipients: List[str], sender: Optional[str]) -> List[str]:
        """Argument vector for one delivery."""
        if self.command:
            program = list(self.command)
        else:
            path = find_sendmail()
            if path is None:
                raise TransportError("No sendmail program found", backend=self.name)
            program = [path]

        argv = program + self.options
        if sender:
            argv += ["-f", sender]
        if recipients:
            argv += ["--"] + list(recipients)
        else:
            argv.append("-t")
        return argv

    def deliver(self, message: bytes, recipients: List[str], sender: Optional[str] = None) -> None:
        argv = self.build_command(recipients, sender)
        self.logger.info("sendmail_started", program=argv[0], recipients=len(recipients))
        try:
            result = subprocess.run(
                argv, input=message, capture_output=True, timeout=self.timeout, check=False
            )
        except (OSError, subprocess.SubprocessError) as e:
            raise TransportError(f"sendmail failed: {e}", backend=self.name) from e

        if result.returncode != 0:
            stderr = result.stderr.decode("utf-8", errors="replace").strip()
            raise TransportError(
                f"sendmail exited with status {result.returncode}: {stderr}", backend=self.name
            )


# ============================================================================
# SMTP
# ============================================================================

class SMTPTransport(Transport):
    """Delivers over an SMTP session opened per message."""

    name = "smtp"
    wants_crlf = True

    def __init__(
        self,
        host: str = "localhost",
        port: Optional[int] = None,
        timeout: float = 60,
        use_ssl: bool = False,
        starttls: bool = False,
        username: Optional[str] = None,
        password: Optional[str] = None,
        local_hostname: Optional[str] = None,
        debug: int = 0,
    ):
        super().__init__()
        self.host = host
        self.port = port if port is not None else (465 if use_ssl else 25)
        self.timeout = timeout
        self.use_ssl = use_ssl
        self.starttls = starttls
        self.username = username
        self.password = password
        self.local_hostname = local_hostname
        self.debug = debug

    def _connect(self) -> smtplib.SMTP:
        smtp_class = smtplib.SMTP_SSL if self.use_ssl else smtplib.SMTP
        return smtp_class(
            self.host, self.port, local_hostname=self.local_hostname, timeout=self.timeout
        )

    def deliver(self, message: bytes, recipients: List[str], sender: Optional[str] = None) -> None:
        if not recipients:
            raise TransportError("SMTP delivery needs at least one recipient", backend=self.name)

        self.logger.info("smtp_started", host=self.host, port=self.port, recipients=len(recipients))
        try:
            with self._connect() as server:
                server.set_debuglevel(self.debug)
                if self.starttls:
                    server.starttls()
                if self.username:
                    server.login(self.username, self.password or "")
                refused = server.sendmail(sender or "", recipients, message)
        except (smtplib.SMTPException, OSError) as e:
            raise TransportError(f"SMTP delivery failed: {e}", backend=self.name) from e

        if refused:
            self.logger.warning("smtp_recipients_refused", refused=sorted(refused))


# ============================================================================
# CALLBACK
# ============================================================================

class CallbackTransport(Transport):
    """Calls ``callback(message, recipients, sender)``; its exceptions become TransportError."""

    name = "sub"

    def __init__(self, callback: Callable[[bytes, List[str], Optional[str]], None]):
        super().__init__()
        if not callable(callback):
            raise TypeError("callback must be callable")
        self.callback = callback

    def deliver(self, message: bytes, recipients: List[str], sender: Optional[str] = None) -> None:
        try:
            self.callback(message, recipients, sender)
        except TransportError:
            raise
        except Exception as e:
            raise TransportError(f"Delivery callback failed: {e}", backend=self.name) from e
