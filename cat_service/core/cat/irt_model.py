"""
Three-parameter logistic (3PL) item response model.

Response probability:
    P(theta) = c + (1 - c) / (1 + exp(-a * (theta - b)))

Fisher information:
    I(theta) = a^2 * (P - c)^2 / ((1 - c)^2 * P * (1 - P))

Where:
    a = discrimination (> 0)
    b = difficulty
    c = guessing floor in [0, 1)

All functions are pure and safe to call from any number of concurrent
estimations. Parameters are assumed validated at ingestion and are not
re-checked here.

References:
    - Birnbaum, A. (1968). Some latent trait models and their use in
      inferring an examinee's ability. In Lord & Novick (Eds.), Statistical
      theories of mental test scores.
    - Lord, F. M. (1980). Applications of item response theory to practical
      testing problems.
"""

import math
from typing import List, Sequence

from cat_service.core.cat.models import ItemResponse


def _logistic(logit: float) -> float:
    """Numerically stable sigmoid; saturates to 0.0 or 1.0 instead of overflowing."""
    if logit >= 0:
        return 1.0 / (1.0 + math.exp(-logit))
    exp_logit = math.exp(logit)
    return exp_logit / (1.0 + exp_logit)


def probability_correct(theta: float, a: float, b: float, c: float) -> float:
    """
    Probability of a correct response under the 3PL model.

    Args:
        theta: Ability level.
        a: Item discrimination.
        b: Item difficulty.
        c: Item guessing parameter.

    Returns:
        P(correct | theta), in (c, 1) away from the asymptotes. Strictly
        increasing in theta for a > 0.
    """
    return c + (1.0 - c) * _logistic(a * (theta - b))


def fisher_information(theta: float, a: float, b: float, c: float) -> float:
    """
    Fisher information of a 3PL item at a given ability level.

    Returns 0.0 where P has numerically reached 0 or 1: the item carries no
    usable information there.

    Args:
        theta: Ability level.
        a: Item discrimination.
        b: Item difficulty.
        c: Item guessing parameter.

    Returns:
        Non-negative information value.
    """
    p = probability_correct(theta, a, b, c)
    q = 1.0 - p
    if p <= 0 or q <= 0:
        return 0.0
    return (a * a * (p - c) ** 2) / ((1.0 - c) ** 2 * p * q)


def total_information(theta: float, responses: Sequence[ItemResponse]) -> float:
    """Total information of the administered items at theta."""
    return sum(
        fisher_information(theta, r.discrimination, r.difficulty, r.guessing)
        for r in responses
    )


def item_characteristic_curve(
    theta_points: Sequence[float], a: float, b: float, c: float
) -> List[float]:
    """P(correct) evaluated over a grid of ability values, for plotting."""
    return [probability_correct(theta, a, b, c) for theta in theta_points]
