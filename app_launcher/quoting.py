"""
Per-platform argument quoting.

``split_command(join_command(args, p), p) == args`` holds on every
platform: POSIX follows sh rules, Windows follows the MSVC runtime
argv rules (the ones ``CommandLineToArgvW`` implements).
"""

import shlex

_WINDOWS_SPECIAL = " \t\n\v\""


def quote_arg(arg: str, platform: str) -> str:
    """Escape a single argument for the given platform's command line."""
    if platform == "windows":
        return _quote_windows(arg)
    return shlex.quote(arg)


def join_command(args: list[str], platform: str) -> str:
    return " ".join(quote_arg(arg, platform) for arg in args)


def split_command(line: str, platform: str) -> list[str]:
    """Parse a command line back into its argument boundaries."""
    if platform == "windows":
        return _split_windows(line)
    return shlex.split(line)


def _quote_windows(arg: str) -> str:
    if arg and not any(c in _WINDOWS_SPECIAL for c in arg):
        return arg

    result = ['"']
    backslashes = 0
    for c in arg:
        if c == "\\":
            backslashes += 1
        elif c == '"':
            # Escape pending backslashes and the quote itself
            result.append("\\" * (backslashes * 2 + 1))
            result.append('"')
            backslashes = 0
        else:
            result.append("\\" * backslashes)
            backslashes = 0
            result.append(c)

    # Backslashes before the closing quote must be doubled
    result.append("\\" * (backslashes * 2))
    result.append('"')
    return "".join(result)


def _split_windows(line: str) -> list[str]:
    args = []
    current = []
    in_quotes = False
    have_arg = False
    i = 0
    n = len(line)

    while i < n:
        c = line[i]

        if c == "\\":
            j = i
            while j < n and line[j] == "\\":
                j += 1
            count = j - i
            if j < n and line[j] == '"':
                current.append("\\" * (count // 2))
                if count % 2:
                    current.append('"')
                    i = j + 1
                else:
                    i = j
            else:
                current.append("\\" * count)
                i = j
            have_arg = True
            continue

        if c == '"':
            have_arg = True
            if in_quotes and i + 1 < n and line[i + 1] == '"':
                current.append('"')
                i += 2
                continue
            in_quotes = not in_quotes
            i += 1
            continue

        if c in " \t" and not in_quotes:
            if have_arg:
                args.append("".join(current))
                current = []
                have_arg = False
            i += 1
            continue

        current.append(c)
        have_arg = True
        i += 1

    if have_arg:
        args.append("".join(current))
    return args
