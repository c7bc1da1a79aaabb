"""Run modes. Each one is an async function returning a result record."""
#
# KEY MODULES:
# - probe.py: unsigned vs signed baseline per action
# - compare.py: allowed vs denied topic per action
# - request_mutations.py: the differential probe over the full triple
# - session_errors.py: deny-all session policy refusal classification
#
from .compare import run_compare
from .probe import run_probe
from .request_mutations import run_request_mutations
from .session_errors import run_session_errors

__all__ = ["run_compare", "run_probe", "run_request_mutations", "run_session_errors"]
