"""Nessus report fetcher.

Talks to the Nessus 5 web API: logs in with a session cookie, lists the
reports held by the server and downloads them in the chosen file formats.
Non-native formats are rendered server side; the fetcher follows the
meta-refresh redirect and polls until the report has been formatted.
"""
import logging
import time
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import List, Optional

import requests

from .config import DEFAULTS
from .selection import NATIVE_FORMAT, STEP2_FORMATS, resolve_report_indices
from .storage import write_artifact
from .utils import (
    HTTPClient,
    filename_from_redirect,
    find_meta_refresh_url,
    safe_report_name,
    server_base_url,
)

logger = logging.getLogger(__name__)

LOGIN_PATH = "/login"
REPORT_LIST_PATH = "/report/list"
FORMATTING_MARKER = "<title>Formatting the report</title>"

ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"
ACCEPT_LANGUAGE = "en-us,en;q=0.5"
ACCEPT_ENCODING = "text/html;charset=UTF-8"


class NessusError(RuntimeError):
    """Base class for failures talking to the Nessus server."""


class AuthenticationError(NessusError):
    pass


class ReportListError(NessusError):
    pass


class DownloadError(NessusError):
    pass


class FormattingTimeoutError(DownloadError):
    """The server kept formatting a report past the poll limit."""


@dataclass(frozen=True)
class NessusSession:
    """Authenticated session: where to talk to and which cookie to send."""

    base_url: str
    cookie: str
    user_agent: str = DEFAULTS["user_agent"]

    @property
    def headers(self):
        return {
            "User-Agent": self.user_agent,
            "Cookie": self.cookie,
            "Accept": ACCEPT,
            "Accept-Language": ACCEPT_LANGUAGE,
            "Accept-Encoding": ACCEPT_ENCODING,
            "Cache-Control": "max-age=0",
        }


@dataclass(frozen=True)
class ReportDescriptor:
    id: str
    name: str
    status: str
    timestamp: Optional[str] = None


def _required_text(node, tag):
    child = node.find(tag)
    if child is None:
        raise ReportListError(f"report entry has no <{tag}> element")
    return (child.text or "").strip()


def parse_report_list(xml_text) -> List[ReportDescriptor]:
    """Parse the `/report/list` reply into descriptors, in document order."""
    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError as exc:
        raise ReportListError(f"malformed report list: {exc}") from exc
    container = root.find("contents/reports")
    if container is None:
        raise ReportListError("reply has no contents/reports element")
    reports = []
    for node in container.findall("report"):
        timestamp = node.findtext("timestamp")
        reports.append(ReportDescriptor(
            id=_required_text(node, "name"),
            name=_required_text(node, "readableName"),
            status=_required_text(node, "status"),
            timestamp=timestamp.strip() if timestamp is not None else None,
        ))
    return reports


def report_path(report, fmt, chapters=""):
    """Request path that starts the download of `report` in format `fmt`."""
    if fmt in ("csv", "nbe"):
        return f"/file/xslt/?report={report.id}&xslt={fmt}.xsl"
    if fmt == NATIVE_FORMAT:
        return f"/file/report/download/?report={report.id}"
    return f"/chapter?report={report.id}&format={fmt}&chapters={chapters}"


class NessusReportFetcher:
    """Client for one Nessus server.

    The fetcher itself only holds the transport; every call after login
    takes the `NessusSession` returned by `authenticate`.
    """

    def __init__(self, host, port, config=None, sleep=time.sleep):
        cfg = dict(DEFAULTS)
        cfg.update(config or {})
        self.config = cfg
        self.client = HTTPClient(
            server_base_url(host, port),
            timeout=cfg["timeout"],
            verify=cfg["verify_tls"],
        )
        self._sleep = sleep

    def authenticate(self, username, password) -> NessusSession:
        data = {"password": password, "seq": self.config["seq"], "login": username}
        try:
            resp = self.client.post(LOGIN_PATH, data=data)
            resp.raise_for_status()
        except requests.RequestException as exc:
            raise AuthenticationError(str(exc)) from exc
        cookie = resp.headers.get("Set-Cookie")
        if not cookie:
            raise AuthenticationError("login response did not set a session cookie")
        logger.debug("Logged in as %s", username)
        return NessusSession(self.client.base_url, cookie, self.config["user_agent"])

    def list_reports(self, session) -> List[ReportDescriptor]:
        try:
            resp = self.client.post(
                REPORT_LIST_PATH, data={"seq": self.config["seq"]}, headers=session.headers
            )
            resp.raise_for_status()
        except requests.RequestException as exc:
            raise ReportListError(str(exc)) from exc
        reports = parse_report_list(resp.content)
        logger.debug("Server returned %d reports", len(reports))
        return reports

    def download(self, session, reports, report_selection, formats, chapters, output_dir):
        """Download every selected report in every selected format.

        `report_selection` holds the operator's report choices (indices or
        `all`). Returns the paths written, in order. The first failure
        raises DownloadError; files already written stay on disk.
        """
        try:
            indices = resolve_report_indices(report_selection, len(reports))
        except ValueError as exc:
            raise DownloadError(str(exc)) from exc

        written = []
        for idx in indices:
            report = reports[idx]
            for fmt in formats:
                try:
                    if fmt == NATIVE_FORMAT:
                        path = self.fetch_native(session, report, output_dir)
                    else:
                        path = self.fetch_formatted(session, report, fmt, chapters, output_dir)
                except requests.RequestException as exc:
                    raise DownloadError(f"{report.name} ({fmt}): {exc}") from exc
                except OSError as exc:
                    raise DownloadError(f"could not save {report.name} ({fmt}): {exc}") from exc
                print(f"Downloading report: {path}")
                written.append(path)
        return written

    def fetch_native(self, session, report, output_dir):
        if not report.timestamp:
            raise DownloadError(f"report {report.name} has no timestamp")
        resp = self.client.get(report_path(report, NATIVE_FORMAT), headers=session.headers)
        resp.raise_for_status()
        fname = f"{safe_report_name(report.name)}-{report.timestamp}.nessus"
        return write_artifact(output_dir, fname, resp.content)

    def fetch_formatted(self, session, report, fmt, chapters, output_dir):
        resp = self.client.get(report_path(report, fmt, chapters), headers=session.headers)
        resp.raise_for_status()
        redirect_url = find_meta_refresh_url(resp.text)
        if not redirect_url:
            raise DownloadError(f"no refresh redirect in reply for {report.name} ({fmt})")
        fname = filename_from_redirect(redirect_url)
        if not fname:
            raise DownloadError(f"cannot derive a filename from {redirect_url!r}")

        resp = self.wait_for_format(session, redirect_url)
        if fmt in STEP2_FORMATS:
            resp = self.client.get(f"{redirect_url}&step=2", headers=session.headers)
            resp.raise_for_status()
        return write_artifact(output_dir, fname, resp.content)

    def wait_for_format(self, session, redirect_url):
        """GET `redirect_url` until the server is done formatting the report."""
        self._sleep(self.config["initial_wait"])
        resp = self.client.get(redirect_url, headers=session.headers)
        limit = self.config["max_poll_attempts"]
        attempts = 0
        while FORMATTING_MARKER in resp.text:
            if limit is not None and attempts >= limit:
                raise FormattingTimeoutError(
                    f"report still formatting after {attempts} polls: {redirect_url}"
                )
            attempts += 1
            logger.debug("Report still formatting, poll %d", attempts)
            self._sleep(self.config["poll_interval"])
            resp = self.client.get(redirect_url, headers=session.headers)
        resp.raise_for_status()
        return resp
