"""Git repository additions, .talismanrc rules and checksums for secret detection."""

__version__ = "1.0.0"

__all__ = [
    "git_readers",
    "git_testing",
    "gitrepo",
    "hasher",
    "progress_bar",
    "prompt",
    "scanner",
    "talismanrc",
    "utility",
]