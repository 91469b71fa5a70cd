"""Interactive entrypoint for bulk downloading Nessus reports."""
import argparse
import getpass
import logging
import sys

from . import __version__
from .config import get_config
from .fetcher import NessusError, NessusReportFetcher
from .selection import (
    CHAPTER_MENU,
    FORMAT_MENU,
    needs_chapters,
    resolve_chapters,
    resolve_formats,
    split_choices,
)
from .storage import ensure_output_dir


class Aborted(Exception):
    """Raised to stop the run after an error message has been printed."""


def fail(message):
    print(f"\r\n\n{message}\r\n\n")
    raise Aborted(message)


def prompt_server(cfg):
    host = input("\r\nEnter the Nessus Server IP: ").strip()
    port = input(f"Enter the Nessus Server Port [{cfg['default_port']}]: ").strip()
    return host, port or str(cfg["default_port"])


def prompt_credentials():
    username = input("Enter your Nessus Username: ").strip()
    password = getpass.getpass("Enter your Nessus Password (will not echo): ")
    return username, password


def print_reports(reports):
    print(f"Number of reports found: {len(reports)}")
    for idx, report in enumerate(reports):
        print(f"[{idx}] Name: {report.name} | GUID: {report.id} | Status: {report.status}")


def print_menu(title, entries):
    print(f"\r\n{title}")
    for code, label in entries:
        print(f"[{code}] {label}")


def prompt_choices(question, what):
    codes = split_choices(input(f"{question} (comma separate list) or 'all': "))
    if not codes:
        fail(f"Error! You need to choose at least one {what}!")
    return codes


def run(cfg):
    print(f"\r\nNessus Report Downloader {__version__}")
    host, port = prompt_server(cfg)
    username, password = prompt_credentials()
    fetcher = NessusReportFetcher(host, port, config=cfg)

    try:
        session = fetcher.authenticate(username, password)
    except NessusError as exc:
        fail(f"Error logging in/getting token: {exc}")

    print("\r\n\nGetting report list...")
    try:
        reports = fetcher.list_reports(session)
    except NessusError as exc:
        fail(f"Error getting report list: {exc}")
    print_reports(reports)
    report_codes = prompt_choices("Enter the report(s) your want to download", "report")

    print_menu("Choose File Type(s) to Download: ", FORMAT_MENU)
    formats = resolve_formats(prompt_choices("Enter the file type(s) you want to download", "file type"))

    chapters = ""
    if needs_chapters(formats):
        print_menu("Choose Chapter(s) to Include: ", CHAPTER_MENU)
        chapters = resolve_chapters(prompt_choices("Enter the chapter(s) you want to include", "chapter"))

    output_dir = input("\r\nPath to save reports to (without trailing slash): ").strip()
    try:
        ensure_output_dir(output_dir)
    except OSError as exc:
        fail(f"Error creating {output_dir}: {exc}")

    written = []
    if formats:
        print("\r\nDownloading report(s). Please wait...")
        try:
            written = fetcher.download(session, reports, report_codes, formats, chapters, output_dir)
        except NessusError as exc:
            fail(f"Error downloading report: {exc}")
    else:
        print("\r\nNo recognised file types selected, nothing to download.")

    print(f"\r\nReport Download Completed! ({len(written)} file(s))\r\n\n")
    return written


def main(argv=None):
    parser = argparse.ArgumentParser(description="Nessus Report Downloader - bulk download reports from a Nessus server")
    parser.add_argument("-c", "--config", dest="config_path", help="Path to a JSON config file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log HTTP requests and polling")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    cfg = get_config(args.config_path)
    try:
        run(cfg)
    except Aborted:
        return 1
    except KeyboardInterrupt:
        print("\r\nInterrupted.")
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
