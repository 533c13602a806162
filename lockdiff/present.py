"""Report assembly and table rendering."""

from rich.table import Table
from rich.text import Text

from .models import ComparisonResult, Report, ReportRow, Severity

NO_DIFFERENCES = "No installable packages found. `npm ci` and `npm i` are the same."

HEADERS = [
    "Package Name",
    "Dependency Type",
    "Installed (npm ci)",
    "Installable (npm i)",
    "Latest Version",
]

SEVERITY_STYLES = {
    Severity.UNCHANGED: "green",
    Severity.MINOR: "yellow",
    Severity.MAJOR: "red",
}
ANNOTATION_STYLE = "italic bright_black"
CATEGORY_STYLE = "cyan"


def severity(result: ComparisonResult) -> Severity:
    """Pick the visual weight of a comparison.

    Latest-vs-installed drift takes precedence over installable drift, and
    only a latest drift can be major.
    """
    if result.latest_changed:
        return Severity.MAJOR if result.major_changed else Severity.MINOR
    if result.installable_changed:
        return Severity.MINOR
    return Severity.UNCHANGED


def build_report(results: list[ComparisonResult], show_all: bool = False) -> Report:
    """Select the comparisons worth showing.

    Args:
        results: Classified dependencies
        show_all: Include dependencies without any drift

    Returns:
        Report with one row per included dependency
    """
    rows = [
        ReportRow(result=result, severity=severity(result))
        for result in results
        if show_all or result.installable_changed or result.latest_changed
    ]
    return Report(rows=rows)


def _annotated(version: str, style: str, *notes: str | None) -> Text:
    text = Text(version, style=style)
    for note in notes:
        if note:
            text.append(f" ({note})", style=ANNOTATION_STYLE)
    return text


def format_row(row: ReportRow) -> list[Text]:
    """Render one row's cells."""
    result = row.result
    spec = result.dependency.spec
    green = SEVERITY_STYLES[Severity.UNCHANGED]
    yellow = SEVERITY_STYLES[Severity.MINOR]

    if result.latest_changed:
        style = SEVERITY_STYLES[row.severity]
        installed = _annotated(result.installed, style)
        installable = _annotated(result.installable, yellow, spec)
        latest = _annotated(result.latest, style, result.diff_kind)
    elif result.installable_changed:
        installed = _annotated(result.installed, yellow)
        installable = _annotated(result.installable, yellow, spec, result.diff_kind)
        latest = _annotated(result.latest, green)
    else:
        installed = _annotated(result.installed, green)
        installable = _annotated(result.installable, green, spec)
        latest = _annotated(result.latest, green)

    return [
        Text(result.dependency.name),
        Text(result.dependency.category.value, style=CATEGORY_STYLE),
        installed,
        installable,
        latest,
    ]


def render_report(report: Report) -> Table:
    """Build the rich table for a report.

    rich has no column spans, so an empty report is a single-column table
    holding the "no differences" message.
    """
    if report.empty:
        table = Table(show_header=False)
        table.add_column(justify="center")
        table.add_row(Text(NO_DIFFERENCES, style="green"))
        return table

    table = Table(show_lines=True)
    for header in HEADERS:
        table.add_column(header, header_style="bold blue")

    for row in report.rows:
        table.add_row(*format_row(row))
    return table
