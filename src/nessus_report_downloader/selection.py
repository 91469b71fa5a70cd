"""Mapping of the operator's menu choices to report indices, formats and chapters."""
import logging

logger = logging.getLogger(__name__)

ALL = "all"

NATIVE_FORMAT = "nessus"
CHAPTER_FORMATS = ("html", "pdf")
# formats whose finished report is fetched from a second `&step=2` URL
STEP2_FORMATS = ("csv", "nbe", "pdf")

FORMAT_CODES = {
    "0": "nessus",
    "1": "html",
    "2": "pdf",
    "3": "csv",
    "4": "nbe",
}
ALL_FORMATS = ["nessus", "html", "pdf", "csv", "nbe"]

FORMAT_MENU = [
    ("0", ".nessus - v2 (No chapter selection)"),
    ("1", "HTML"),
    ("2", "PDF"),
    ("3", "CSV (No chapter selection)"),
    ("4", "NBE (No chapter selection)"),
]

CHAPTER_CODES = {
    "0": "vuln_by_plugin",
    "1": "vuln_by_host",
    "2": "vuln_hosts_summary",
    "3": "remediations",
    "4": "compliance_exec",
    "5": "compliance",
}
ALL_CHAPTERS = [
    "vuln_hosts_summary",
    "vuln_by_plugin",
    "vuln_by_host",
    "remediations",
    "compliance_exec",
    "compliance",
]

CHAPTER_MENU = [
    ("0", "Vulnerabilities By Plugin"),
    ("1", "Vulnerabilities By Host"),
    ("2", "Hosts Summary (Executive)"),
    ("3", "Suggested Remediations"),
    ("4", "Compliance Check (Executive)"),
    ("5", "Compliance Check"),
]


def split_choices(raw):
    """Split a comma separated answer into its codes.

    Empty items are dropped, so a blank answer (or one made only of
    commas) gives an empty list.
    """
    codes = [c.strip() for c in (raw or "").split(",")]
    return [c for c in codes if c]


def _add_unique(target, values):
    for v in values:
        if v not in target:
            target.append(v)


def resolve_formats(codes):
    """Map format codes to format names, ignoring codes that are not on the menu."""
    formats = []
    for code in codes:
        if code == ALL:
            _add_unique(formats, ALL_FORMATS)
        elif code in FORMAT_CODES:
            _add_unique(formats, [FORMAT_CODES[code]])
        else:
            logger.warning("Ignoring unknown file type choice %r", code)
    return formats


def needs_chapters(formats):
    return any(f in CHAPTER_FORMATS for f in formats)


def resolve_chapters(codes):
    """Build the semicolon terminated chapter string sent with html/pdf requests."""
    chapters = []
    for code in codes:
        if code == ALL:
            _add_unique(chapters, ALL_CHAPTERS)
        elif code in CHAPTER_CODES:
            _add_unique(chapters, [CHAPTER_CODES[code]])
        else:
            logger.warning("Ignoring unknown chapter choice %r", code)
    return "".join(f"{c};" for c in chapters)


def resolve_report_indices(codes, report_count):
    """Turn report choices into indices into the report list.

    `all` selects every report. Anything else must be an integer index
    within range, otherwise ValueError is raised.
    """
    if ALL in codes:
        return list(range(report_count))
    indices = []
    for code in codes:
        try:
            idx = int(code)
        except ValueError:
            raise ValueError(f"invalid report index {code!r}") from None
        if not 0 <= idx < report_count:
            raise ValueError(f"report index {idx} out of range (0-{report_count - 1})")
        _add_unique(indices, [idx])
    return indices
