from rulem.tui.app import RulemApp, run_tui
from rulem.tui.renderers import RulemConsoleUI

__all__ = ["RulemApp", "RulemConsoleUI", "run_tui"]
