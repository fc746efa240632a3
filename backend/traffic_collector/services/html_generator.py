"""
HTML Generator
==============

Renders the static landing page (docs/index.html) that lists every JSON file
the collector has written, so the data can be browsed on GitHub Pages.
"""

from html import escape
from typing import Iterable, Optional

from traffic_collector.utils.dates import utc_now_iso


class HTMLGenerator:
    """Builds the landing page HTML."""

    TITLE = "Telraam Traffic Data"

    def generate_landing_page(self, links: Iterable[str], generated_at: Optional[str] = None) -> str:
        """
        Build the landing page.

        Args:
            links: Relative paths to the JSON files (already sorted)
            generated_at: Timestamp shown in the footer (defaults to now)

        Returns:
            A complete HTML document
        """
        links = list(links)
        generated_at = generated_at or utc_now_iso()

        if links:
            items = "\n".join(
                f'            <li><a href="{escape(link, quote=True)}">{escape(link)}</a></li>'
                for link in links
            )
            file_list = f"        <ul>\n{items}\n        </ul>"
        else:
            file_list = "        <p>No data files yet.</p>"

        return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1">
    <title>{self.TITLE}</title>
    <style>
        body {{ font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, sans-serif; margin: 2rem; color: #222; }}
        h1 {{ font-size: 1.5rem; }}
        li {{ margin: 0.2rem 0; }}
        code, a {{ font-family: ui-monospace, SFMono-Regular, Menlo, monospace; }}
        .footer {{ margin-top: 2rem; color: #666; font-size: 0.85rem; }}
    </style>
</head>
<body>
    <h1>{self.TITLE}</h1>
    <p>Hourly and daily traffic counts collected from the Telraam API ({len(links)} file(s)).</p>
    <div class="files">
{file_list}
    </div>
    <div class="footer">
        <p>Last generated: {escape(generated_at)}</p>
    </div>
</body>
</html>
"""
