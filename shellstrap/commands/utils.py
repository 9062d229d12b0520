"""Shared utility functions for commands."""

import sys


def parse_font_names(values: tuple[str, ...]) -> tuple[str, ...]:
    """Flatten repeated and comma-separated --fonts values, keeping order.

    Examples:
        >>> parse_font_names(("FiraCode,Meslo", " Hack ", "FiraCode"))
        ('FiraCode', 'Meslo', 'Hack')
    """
    names = []
    for value in values:
        for part in value.split(","):
            name = part.strip()
            if name and name not in names:
                names.append(name)
    return tuple(names)


def notify_completion(message: str) -> None:
    """Show a desktop message box on Windows; a no-op elsewhere."""
    if sys.platform != "win32":
        return
    import ctypes

    MB_ICONINFORMATION = 0x40
    ctypes.windll.user32.MessageBoxW(None, message, "shellstrap", MB_ICONINFORMATION)
