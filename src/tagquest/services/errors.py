"""Service-layer exceptions."""


class CharacterCreationError(Exception):
    """Raised when a stat allocation breaks the creation rules."""


class SaveLoadError(Exception):
    """Raised when save or load operations fail."""


class SessionStateError(Exception):
    """Raised when an action is not valid in the current session phase."""
