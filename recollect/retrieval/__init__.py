from recollect.retrieval.coordinator import RetrievalCoordinator
from recollect.retrieval.formatter import ContextFormatter, FormattedContext
from recollect.retrieval.ranking import merge_and_rank

__all__ = ["RetrievalCoordinator", "ContextFormatter", "FormattedContext", "merge_and_rank"]
