"""Installer engine: install state machine, clean step and restore."""

from .cleaning import clean_package, fix_spaces, prune_library_folders
from .installation import Installer
from .models import (
    CleanReport,
    InstallResult,
    InstallState,
    InstallStatus,
    RelocationFailure,
    RestoreResult,
)
from .restore import check_for_unnecessary_packages, restore

__all__ = [
    "InstallState",
    "InstallStatus",
    "InstallResult",
    "CleanReport",
    "RelocationFailure",
    "RestoreResult",
    "Installer",
    "clean_package",
    "fix_spaces",
    "prune_library_folders",
    "restore",
    "check_for_unnecessary_packages",
]
