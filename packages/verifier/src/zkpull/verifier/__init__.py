"""zkpull Verifier -- zkTLS 证明校验层

packages/verifier 的公开接口导出。
"""

from .client import PR_LINK_PATTERN, ProofServiceClient, parse_pr_link
from .decision import ValidationDecision
from .extractor import ProofExtractor
from .verifier import ProofVerifier

__all__ = [
    "ProofServiceClient",
    "PR_LINK_PATTERN",
    "parse_pr_link",
    "ProofExtractor",
    "ValidationDecision",
    "ProofVerifier",
]
