"""
Confidence Module

Maps the raw score of a model fit to the confidence reported to callers.
"""


def get_confidence(score: float) -> float:
    """
    Convert a raw fit score in [0, 1] to a user-facing confidence.

    The transform is concave: near-perfect fits lose little, poor fits are
    pushed down hard, and moderate fits still read as fairly confident.

    Args:
        score: Raw fit score, higher is better

    Returns:
        Confidence in range [0, 1]
    """
    return 1.0 - (1.0 - score) * (1.0 - score)
