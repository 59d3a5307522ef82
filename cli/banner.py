"""ASCII art banner for the RuleDesk CLI."""

BANNER = r"""
 ____        _      ____            _
|  _ \ _   _| | ___|  _ \  ___  ___| | __
| |_) | | | | |/ _ \ | | |/ _ \/ __| |/ /
|  _ <| |_| | |  __/ |_| |  __/\__ \   <
|_| \_\\__,_|_|\___|____/ \___||___/_|\_\
"""

TAGLINE = "Mechanical sell-down and buy-up bands for a written investment rulebook"


def print_banner() -> None:
    """Print the banner and tagline."""
    print(BANNER)
    print(f"  {TAGLINE}")
    print()
