"""Exception types raised inside the pipeline."""


class ReelScraperError(Exception):
    pass


class ParseFailure(ReelScraperError):
    """The mandatory region of a page is missing or empty."""


class InvalidTransition(ReelScraperError):
    def __init__(self, job_id: int, current: str, target: str):
        super().__init__(f"Job {job_id}: cannot move from {current} to {target}")
        self.job_id = job_id
        self.current = current
        self.target = target


class JobNotFound(ReelScraperError):
    def __init__(self, job_id: int):
        super().__init__(f"Job {job_id} not found")
        self.job_id = job_id


class SourceError(ReelScraperError):
    """URL discovery for a source failed."""
