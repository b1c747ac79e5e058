"""Semver bump arithmetic and the release menu decision.

Pure functions only: nothing here reads input, prints, or touches disk.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel

from .models import BumpClass, SemVer

# Menu choice -> bump class, in the order the menu prints them
MENU_CHOICES: dict[str, BumpClass] = {
    "1": BumpClass.PATCH,
    "2": BumpClass.MINOR,
    "3": BumpClass.MAJOR,
    "4": BumpClass.CUSTOM,
}


class BumpPlan(BaseModel):
    """The outcome of a bump decision: from which version to which."""

    current: str
    new: str
    bump: BumpClass

    @property
    def tag(self) -> str:
        return f"v{self.new}"


def bump_version(current: str, bump: BumpClass) -> str:
    """Increment a version string by one bump class.

    Pre-release and build suffixes are dropped from the result.

    Args:
        current: The current semantic version.
        bump: PATCH, MINOR, or MAJOR.

    Returns:
        str: The incremented version.

    Raises:
        ValueError: If current is not a semantic version, or bump is CUSTOM.
    """
    v = SemVer.parse(current)
    if bump == BumpClass.PATCH:
        return f"{v.major}.{v.minor}.{v.patch + 1}"
    if bump == BumpClass.MINOR:
        return f"{v.major}.{v.minor + 1}.0"
    if bump == BumpClass.MAJOR:
        return f"{v.major + 1}.0.0"
    raise ValueError("Custom versions are not computed; supply one explicitly")


def bump_preview(current: str) -> dict[BumpClass, str]:
    """Resulting version for every computed bump class, for the menu."""
    return {b: bump_version(current, b) for b in (BumpClass.PATCH, BumpClass.MINOR, BumpClass.MAJOR)}


def normalize_custom_version(text: Optional[str]) -> str:
    """Validate a user-supplied custom version.

    A leading ``v`` is accepted and stripped, so ``v2.0.0`` and ``2.0.0``
    both yield ``2.0.0``.

    Raises:
        ValueError: If the value is empty or not a semantic version.
    """
    value = (text or "").strip()
    if not value:
        raise ValueError("Custom version must not be empty")
    if value[0] in "vV":
        value = value[1:]
    return str(SemVer.parse(value))


def resolve_choice(choice: str) -> BumpClass:
    """Map a menu entry (``1``-``4`` or a bump class name) to a BumpClass.

    Raises:
        ValueError: If the choice is not on the menu.
    """
    key = choice.strip().lower()
    if key in MENU_CHOICES:
        return MENU_CHOICES[key]
    try:
        return BumpClass(key)
    except ValueError:
        raise ValueError(f"Invalid choice: '{choice}'") from None


def plan_bump(current: str, choice: str, custom: Optional[str] = None) -> BumpPlan:
    """Decide the release version from the menu choice.

    Args:
        current: The synchronized current version.
        choice: Menu entry as typed by the user.
        custom: The explicit version, required when choice is custom.

    Returns:
        BumpPlan: current -> new version.

    Raises:
        ValueError: On an invalid choice or an invalid custom version.
    """
    bump = resolve_choice(choice)
    if bump == BumpClass.CUSTOM:
        new = normalize_custom_version(custom)
    else:
        new = bump_version(current, bump)
    return BumpPlan(current=current, new=new, bump=bump)
