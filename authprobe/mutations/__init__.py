"""The Mutation Catalog and its application policy."""
#
# KEY MODULES:
# - models.py: Mutation record, MutationKind, invariant-checked apply()
# - strategies.py: The static catalog of parameter transforms
# - compare.py: Change detector used to skip no-op applications
#
from .compare import did_mutation_change_params
from .models import RESOURCE_KEYS, Mutation, MutationKind
from .strategies import (
    DEFAULT_MUTATIONS,
    MUTATION_CATALOG,
    NONEXISTENT_KEY,
    PARAMETER_MUTATIONS,
    get_mutation,
    get_mutations_for_action,
)

__all__ = [
    "RESOURCE_KEYS",
    "Mutation",
    "MutationKind",
    "DEFAULT_MUTATIONS",
    "PARAMETER_MUTATIONS",
    "MUTATION_CATALOG",
    "NONEXISTENT_KEY",
    "get_mutation",
    "get_mutations_for_action",
    "did_mutation_change_params",
]
