from __future__ import annotations
import sys, platform

from implgen import __version__ as app_ver, __dev__ as is_dev

def _get_versions() -> dict[str, str]:

    # lark version (best-effort; don't crash on odd installs)
    lark_ver = "unknown"
    try:
        import lark
        lark_ver = getattr(lark, "__version__", "unknown")
    except ImportError:
        pass

    return {
        "app": app_ver,
        "python": platform.python_version(),
        "lark": lark_ver,
    }

def version_text() -> str:
    v = _get_versions()
    dev_marker = " (dev)" if is_dev else ""
    return f"implgen {v['app']}{dev_marker} • Python {v['python']} • lark {v['lark']}"

def print_banner(stream=None) -> None:
    """Version line; styled only on an interactive terminal."""
    stream = stream or sys.stdout
    if getattr(stream, "isatty", lambda: False)():
        BOLD, RESET = "\x1b[1m", "\x1b[0m"
    else:
        BOLD, RESET = "", ""
    print(f"{BOLD}{version_text()}{RESET}", file=stream)
