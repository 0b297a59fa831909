"""HTML rendering of the markdown reports."""

import html
import re

HEADING = re.compile(r"^(#{1,6})\s+(.+)$")
LIST_ITEM = re.compile(r"^\s*(?:[-*]|\d+\.)\s+(.+)$")
TABLE_SEPARATOR = re.compile(r"^\|?[\s\-:|]+\|?$")
BOLD = re.compile(r"\*\*(.+?)\*\*")

STYLE = """\
body { font-family: Arial, sans-serif; margin: 40px; }
h1 { color: #2c3e50; }
h2 { color: #34495e; border-bottom: 2px solid #ecf0f1; }
h3 { color: #7f8c8d; }
table { border-collapse: collapse; width: 100%; margin: 20px 0; }
th, td { border: 1px solid #ddd; padding: 8px; text-align: left; }
th { background-color: #f2f2f2; }"""


def _inline(text: str) -> str:
    return BOLD.sub(r"<strong>\1</strong>", html.escape(text, quote=False))


def markdown_to_html(markdown: str) -> str:
    """Convert the markdown subset used by the reports into HTML.

    Handles headings, bold text, bullet and numbered lists, pipe tables and
    paragraphs. Text is escaped before any markup is added.
    """
    out: list[str] = []
    table: list[list[str]] = []
    items: list[str] = []

    def flush() -> None:
        if table:
            header, *body = table
            out.append("<table>")
            out.append("<tr>" + "".join(f"<th>{c}</th>" for c in header) + "</tr>")
            out.extend(
                "<tr>" + "".join(f"<td>{c}</td>" for c in row) + "</tr>"
                for row in body
            )
            out.append("</table>")
            table.clear()
        if items:
            out.append("<ul>")
            out.extend(f"<li>{item}</li>" for item in items)
            out.append("</ul>")
            items.clear()

    for line in markdown.splitlines():
        stripped = line.strip()
        if stripped.startswith("|"):
            if items:
                flush()
            if not TABLE_SEPARATOR.match(stripped):
                cells = stripped.strip("|").split("|")
                table.append([_inline(cell.strip()) for cell in cells])
            continue
        if table:
            flush()

        if match := LIST_ITEM.match(line):
            items.append(_inline(match.group(1)))
            continue
        flush()

        if not stripped:
            continue
        if match := HEADING.match(stripped):
            level = len(match.group(1))
            out.append(f"<h{level}>{_inline(match.group(2))}</h{level}>")
        else:
            out.append(f"<p>{_inline(stripped)}</p>")

    flush()
    return "\n".join(out)


def render_html(markdown: str, *, title: str) -> str:
    """Wrap a markdown report into a standalone HTML document."""
    return "\n".join(
        (
            "<!DOCTYPE html>",
            "<html>",
            "<head>",
            '<meta charset="utf-8">',
            f"<title>{html.escape(title)}</title>",
            f"<style>\n{STYLE}\n</style>",
            "</head>",
            "<body>",
            markdown_to_html(markdown),
            "</body>",
            "</html>",
            "",
        )
    )
