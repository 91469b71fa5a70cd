"""Utility helpers for HTTP operations against the Nessus server and HTML parsing."""
import logging
import os
from urllib.parse import urljoin
import requests
import urllib3
from bs4 import BeautifulSoup
from urllib3.exceptions import InsecureRequestWarning

logger = logging.getLogger(__name__)


class HTTPClient:
    """Simple HTTP client wrapper around requests.Session.

    Bound to one server base URL; `get` and `post` accept server-relative
    paths (or absolute URLs) and return the underlying `requests.Response`.
    """

    def __init__(self, base_url, timeout=30, verify=False):
        self.base_url = base_url
        self.session = requests.Session()
        self.session.verify = verify
        self.timeout = timeout
        if not verify:
            urllib3.disable_warnings(InsecureRequestWarning)

    def url_for(self, path):
        return urljoin(self.base_url, path)

    def get(self, path, params=None, headers=None):
        """Perform an HTTP GET and return the Response."""
        url = self.url_for(path)
        logger.debug("GET %s", url)
        return self.session.get(url, params=params, headers=headers, timeout=self.timeout)

    def post(self, path, data=None, headers=None):
        """Perform a form-encoded HTTP POST and return the Response."""
        url = self.url_for(path)
        logger.debug("POST %s", url)
        return self.session.post(url, data=data, headers=headers, timeout=self.timeout)


def server_base_url(host, port):
    return f"https://{host}:{port}/"


def find_meta_refresh_url(html):
    """Return the redirect target of a `<meta http-equiv="refresh">` tag.

    The target is everything after `url=` in the tag's `content` attribute.
    Returns None when the page carries no such tag.
    """
    soup = BeautifulSoup(html or "", "html.parser")
    for meta in soup.find_all("meta"):
        if (meta.get("http-equiv") or "").lower() != "refresh":
            continue
        content = meta.get("content") or ""
        idx = content.lower().find("url=")
        if idx == -1:
            return None
        return content[idx + 4:] or None
    return None


def safe_report_name(readable_name):
    # "/" would otherwise be taken as a directory separator
    return readable_name.replace("/", "-")


def filename_from_redirect(redirect_url):
    """Derive the artifact filename from the second `=`-separated token.

    Returns None when there is no such token or when it is not a bare
    file name (absolute paths and `..` would leave the output directory).
    """
    parts = redirect_url.split("=")
    if len(parts) < 2:
        return None
    fname = parts[1]
    if not fname or fname in (".", "..") or os.path.basename(fname) != fname:
        return None
    return fname
