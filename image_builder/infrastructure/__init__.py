from ._operation_poller import OperationPoller as OperationPoller
from ._operation_poller import PollOutcome as PollOutcome
from ._operation_poller import PollResult as PollResult
