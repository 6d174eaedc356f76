"""
Console progress reporting.

The deploy pipeline never prints directly: every stage receives a
``ProgressSink`` and reports through it. ``ConsoleUI`` is the terminal
implementation, coloring lines by semantic style with humanfriendly.

Styles:
    info     plain text
    success  green
    error    red
    warning  yellow
    notice   cyan (elapsed times, counts)
"""

import sys
from typing import Dict, Optional, Protocol, TextIO

from humanfriendly.terminal import ansi_wrap, terminal_supports_colors


STYLES: Dict[str, Dict[str, object]] = {
    "info": {},
    "success": {"color": "green"},
    "error": {"color": "red"},
    "warning": {"color": "yellow"},
    "notice": {"color": "cyan"},
}


class ProgressSink(Protocol):
    """Capability the pipeline reports progress through."""

    def start(self, label: str, tick_char: str = ".") -> None:
        ...

    def stop(self) -> None:
        ...

    def write_line(self, message: str, style: str = "info") -> None:
        ...


class ConsoleUI:
    """
    Terminal progress sink.

    ``start`` writes the label followed by the tick character and leaves the
    line open; ``stop`` closes it. ``write_line`` always starts on a fresh
    line, closing an open progress line first.

    Example:
        >>> ui = ConsoleUI()
        >>> ui.start("Uploading index.html [512b]", ".")
        >>> ui.stop()
        >>> ui.write_line("Upload complete: index.html [0.21s]", "success")
    """

    def __init__(self, stream: Optional[TextIO] = None, colors: Optional[bool] = None) -> None:
        self.stream = stream if stream is not None else sys.stdout
        self.colors = terminal_supports_colors(self.stream) if colors is None else colors
        self._active_label: Optional[str] = None

    @property
    def active(self) -> bool:
        return self._active_label is not None

    def style(self, text: str, style: str = "info") -> str:
        """Wrap ``text`` in the ANSI codes for ``style`` (unchanged without colors)."""
        if style not in STYLES:
            raise ValueError(f"Unknown style: {style}")
        options = STYLES[style]
        if not self.colors or not options:
            return text
        return ansi_wrap(text, **options)

    def start(self, label: str, tick_char: str = ".") -> None:
        if self.active:
            self.stop()
        self._active_label = label
        self.stream.write(f"{label} {self.style(tick_char, 'success')}")
        self.stream.flush()

    def stop(self) -> None:
        if not self.active:
            return
        self._active_label = None
        self.stream.write("\n")
        self.stream.flush()

    def write_line(self, message: str, style: str = "info") -> None:
        if self.active:
            self.stop()
        self.stream.write(self.style(message, style) + "\n")
        self.stream.flush()
