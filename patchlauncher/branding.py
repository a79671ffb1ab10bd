"""Centralized branding constants — single source of truth for versions and URLs."""


class AppBranding:
    """Launcher identity constants."""

    APP_NAME = "PatchLauncher"
    VERSION = "1.0.0"

    # Monotonic build number of the launcher executable itself, compared
    # against <cdn>/<prefix>launcher/version for self-updates
    LAUNCHER_BUILD = 1

    CDN_URL = "https://cdn.patchlauncher.app"

    @classmethod
    def window_title(cls) -> str:
        return f"{cls.APP_NAME}  v{cls.VERSION}"

    @classmethod
    def user_agent(cls) -> str:
        return f"{cls.APP_NAME}/{cls.VERSION}"
