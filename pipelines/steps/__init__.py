# Namespace for collection loop steps
from .probe_delta import ProbeDelta  # noqa: F401
from .extract_batch import ExtractBatch  # noqa: F401
from .commit_batch import CommitBatch  # noqa: F401
from .load_more import LoadMore  # noqa: F401
