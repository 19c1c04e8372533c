"""
Maximum likelihood ability estimation for Computerized Adaptive Testing.

Refines the ability estimate (theta) after each scored response using
Newton-Raphson iterations on the 3PL log-likelihood:

    L1 = sum((u_i - P_i) * a_i * W_i / (P_i * Q_i))
    L2 = -sum(a_i^2 * W_i^2 / (P_i * Q_i))
    theta <- theta - L1 / L2

Where W_i = (P_i - c_i) / (1 - c_i) and u_i is 1 for a correct response.

MLE has no interior maximum when every response is correct (or every response
is incorrect): the likelihood is monotonic and the estimate diverges. Those
patterns move the prior by a fixed step instead, capped at +/-3.0.

The standard error is the inverse square root of the total Fisher information
at the estimate.
"""

import logging
import math
from typing import Sequence

from cat_service.core.cat.irt_model import probability_correct, total_information
from cat_service.core.cat.models import ItemResponse

logger = logging.getLogger(__name__)

# Practical range of the ability scale
THETA_MIN = -4.0
THETA_MAX = 4.0

# Fixed step and cap for all-correct / all-incorrect response patterns
EXTREME_PATTERN_STEP = 0.5
EXTREME_PATTERN_CAP = 3.0

# Newton-Raphson configuration
MAX_ITERATIONS = 50
CONVERGENCE_TOLERANCE = 0.001  # |delta| below this is converged
FLAT_HESSIAN_TOLERANCE = 1e-9  # |L2| below this has no safe update
EPSILON = 1e-9  # Guards P*Q against division by zero


def clamp_theta(theta: float) -> float:
    """Clamp an ability value to [THETA_MIN, THETA_MAX]."""
    return max(THETA_MIN, min(THETA_MAX, theta))


def estimate_theta(
    responses: Sequence[ItemResponse],
    prior_theta: float = 0.0,
) -> float:
    """
    Estimate ability from the full response history.

    Edge cases are checked in order before the general algorithm:
        1. No responses: the prior is returned unchanged.
        2. All correct: min(3.0, prior_theta + 0.5).
        3. All incorrect: max(-3.0, prior_theta - 0.5).
        4. Otherwise: Newton-Raphson MLE starting from prior_theta.

    Deterministic: identical inputs give bit-identical output.

    Args:
        responses: Scored responses in administration order.
        prior_theta: Estimate produced by the previous call for this session
            (0.0 for a new attempt).

    Returns:
        Ability estimate in [-4, 4].

    Raises:
        ValueError: If prior_theta is not a finite number.
    """
    if not math.isfinite(prior_theta):
        raise ValueError(f"prior_theta must be a finite number, got {prior_theta}")

    prior_theta = clamp_theta(prior_theta)

    if not responses:
        return prior_theta

    if all(r.is_correct for r in responses):
        return min(EXTREME_PATTERN_CAP, prior_theta + EXTREME_PATTERN_STEP)
    if not any(r.is_correct for r in responses):
        return max(-EXTREME_PATTERN_CAP, prior_theta - EXTREME_PATTERN_STEP)

    return _newton_raphson(responses, prior_theta)


def _newton_raphson(responses: Sequence[ItemResponse], start_theta: float) -> float:
    """
    Maximize the 3PL log-likelihood of a mixed response pattern.

    Stops when |delta| < CONVERGENCE_TOLERANCE, when the second derivative is
    too flat to divide by, or after MAX_ITERATIONS. Responses whose P has hit
    0 or 1 at the current theta contribute nothing to that iteration.
    """
    theta = start_theta
    for iteration in range(MAX_ITERATIONS):
        first_derivative = 0.0
        second_derivative = 0.0
        for r in responses:
            a, c = r.discrimination, r.guessing
            p = probability_correct(theta, a, r.difficulty, c)
            q = 1.0 - p
            if p <= 0 or q <= 0:
                continue
            w = (p - c) / (1.0 - c)
            observed = 1.0 if r.is_correct else 0.0
            first_derivative += (observed - p) * a * w / (p * q + EPSILON)
            second_derivative -= a * a * w * w / (p * q + EPSILON)

        if abs(second_derivative) < FLAT_HESSIAN_TOLERANCE:
            logger.debug(
                f"Flat likelihood at theta={theta:.4f} after {iteration} iterations; "
                "keeping current estimate"
            )
            break

        delta = first_derivative / second_derivative
        theta = clamp_theta(theta - delta)
        if abs(delta) < CONVERGENCE_TOLERANCE:
            break
    else:
        logger.debug(
            f"Newton-Raphson did not converge in {MAX_ITERATIONS} iterations "
            f"(theta={theta:.4f}, n={len(responses)})"
        )

    return clamp_theta(theta)


def compute_standard_error(theta: float, responses: Sequence[ItemResponse]) -> float:
    """
    Standard error of an ability estimate.

    SE = 1 / sqrt(sum of item Fisher information at theta)

    Args:
        theta: Ability estimate.
        responses: Scored responses that produced the estimate.

    Returns:
        Non-negative SE, or math.inf when there are no responses or no
        information. Callers must treat infinity as "cannot terminate yet".

    Raises:
        ValueError: If theta is not a finite number.
    """
    if not math.isfinite(theta):
        raise ValueError(f"theta must be a finite number, got {theta}")

    if not responses:
        return math.inf

    information = total_information(theta, responses)
    if information <= 0:
        return math.inf

    return 1.0 / math.sqrt(information)
