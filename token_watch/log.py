import sys

_debug = False


def set_debug(enabled: bool):
    global _debug
    _debug = bool(enabled)


def log_debug(msg):
    if _debug:
        print(f"DEBUG: {msg}", file=sys.stderr)


def log_warn(msg):
    # Always shown, debug flag only gates log_debug
    print(f"WARN: {msg}", file=sys.stderr)
