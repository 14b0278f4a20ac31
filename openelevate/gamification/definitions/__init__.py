"""Badge Definition Loader"""

from openelevate.gamification.definitions.loader import (
    DefinitionLoader,
    get_loader,
    load_definitions_on_startup,
)

__all__ = ["DefinitionLoader", "get_loader", "load_definitions_on_startup"]
