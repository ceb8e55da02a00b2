"""Job lifecycle: submission, polling and the end-to-end pipeline."""

from genstudio.jobs.pipeline import GenerationPipeline, JobOutcome, create_pipeline
from genstudio.jobs.poller import JobPoller, PollPolicy, policy_for_kind
from genstudio.jobs.submitter import JobSubmitter, create_submitter

__all__ = [
    "GenerationPipeline",
    "JobOutcome",
    "JobPoller",
    "JobSubmitter",
    "PollPolicy",
    "create_pipeline",
    "create_submitter",
    "policy_for_kind",
]
