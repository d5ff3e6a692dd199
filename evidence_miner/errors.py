"""Error taxonomy for the Evidence Miner pipeline."""


class EvidenceMinerError(Exception):
    """Base class for every error the pipeline raises on purpose."""


class InvalidInput(EvidenceMinerError):
    """Caller-preventable precondition failure (empty text, nothing selected, ...)."""


class PipelineBusy(InvalidInput):
    """Raised when a stage transition is started while another one is in flight."""


class InvalidQuery(EvidenceMinerError):
    """The selected terms do not produce a runnable PubMed query."""


class UpstreamUnavailable(EvidenceMinerError):
    """Transport or parse failure from PubMed or the LLM endpoint."""


class AlignmentFailure(EvidenceMinerError):
    """A batch reply does not line up 1:1 with the batch that was sent."""

    def __init__(self, expected: int, received: int):
        super().__init__(f"Expected {expected} items, received {received}")
        self.expected = expected
        self.received = received
