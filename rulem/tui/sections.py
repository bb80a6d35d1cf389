from typing import Iterable, Optional

from rich.panel import Panel

from rulem.tui.enums import UIStyle
from rulem.utils import compact_home_paths_in_text


class UISection:
    @staticmethod
    def wrap(title: str, body, style: str = UIStyle.BLUE.value, subtitle: Optional[str] = None) -> Panel:
        return Panel(body, title=title, subtitle=subtitle, border_style=style, padding=(0, 1))

    @staticmethod
    def note(title: str, body: str, style: str = UIStyle.DIM.value) -> Panel:
        return Panel(compact_home_paths_in_text(body), title=title, border_style=style, padding=(0, 1))

    @staticmethod
    def bullets(title: str, lines: Iterable[str], style: str) -> Panel:
        body = "\n".join(f"- {compact_home_paths_in_text(line)}" for line in lines)
        return Panel(body, title=title, border_style=style, padding=(0, 1))
