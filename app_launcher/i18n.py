"""
User-facing strings for consent dialogs and notifications.
"""

STRINGS = {
    "en": {
        "sandbox.setup.title": "Sandbox setup",
        "sandbox.setup.proceed": "Set up sandbox",
        "sandbox.setup.windows.message": "The sandbox needs a restricted player account.",
        "sandbox.setup.windows.detail": (
            "A local account will be created once. Isolated games run under it "
            "and can only read their own install folder. Administrator rights are "
            "required for this one-time setup."
        ),
        "sandbox.setup.macos.message": "The sandbox needs sandbox-exec.",
        "sandbox.setup.macos.detail": (
            "Isolated games are started from a proxy bundle that restricts their "
            "access to your files."
        ),
        "sandbox.setup.linux.message": "The sandbox needs firejail.",
        "sandbox.setup.linux.detail": (
            "Install firejail from your distribution's package manager, then "
            "confirm to continue."
        ),
        "docs.learn_more": "Learn more",
        "prompt.action.cancel": "Cancel",
        "game.install.could_not_launch": "Couldn't launch {title}",
        "game.install.could_not_launch.missing_jre": (
            "{title} needs a Java runtime, and none was found on this computer."
        ),
        "grid.item.download_java": "Download Java",
        "notification.launch_ended": "{title} has exited.",
    },
}

DEFAULT_LANG = "en"


def t(key: str, lang: str = DEFAULT_LANG, **kwargs) -> str:
    """Look up a string and fill in its placeholders.

    Unknown keys come back as the key itself so a missing translation is
    visible rather than fatal.
    """
    table = STRINGS.get(lang) or STRINGS[DEFAULT_LANG]
    template = table.get(key) or STRINGS[DEFAULT_LANG].get(key, key)
    return template.format(**kwargs) if kwargs else template
