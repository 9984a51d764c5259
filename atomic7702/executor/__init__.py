"""
Smart account context and the delegation-aware dispatcher.
"""

from atomic7702.executor.dispatcher import (
    Batch,
    DelegationDispatcher,
    Single,
    Submission,
    SubmissionResult,
    make_submission,
)
from atomic7702.executor.smart_account import SmartAccount

__all__ = [
    'Batch',
    'DelegationDispatcher',
    'Single',
    'SmartAccount',
    'Submission',
    'SubmissionResult',
    'make_submission',
]
