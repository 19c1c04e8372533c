"""
Run a seeded Monte Carlo simulation of the adaptive testing engine.

Generates a synthetic 3PL item bank, simulates examinees through
CATSessionManager, and prints an aggregate summary as JSON.

Exit codes:
    0 - Success
    2 - Simulation error
    3 - Configuration/import error
"""
import argparse
import json
import logging
import sys

logger = logging.getLogger("cat_simulation")


def _parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("--examinees", type=int, default=200)
    parser.add_argument("--items", type=int, default=200, help="Item bank size")
    parser.add_argument("--min-items", type=int, default=5)
    parser.add_argument("--max-se", type=float, default=0.35)
    parser.add_argument(
        "--max-items", type=int, default=30, help="Exam length cap (0 disables)"
    )
    parser.add_argument("--seed", type=int, default=42)
    parser.add_argument("--log-level", default="INFO")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = _parse_args(argv)

    # Defer imports so config/import failures produce exit code 3
    try:
        from cat_service.core.cat.simulation import (
            SimulationConfig,
            generate_item_bank,
            run_simulation,
        )
        from cat_service.core.logging_config import setup_logging
    except Exception as exc:
        logging.basicConfig(level=logging.INFO)
        logger.error("Failed to import required modules: %s", exc)
        return 3

    setup_logging(level=args.log_level)

    try:
        config = SimulationConfig(
            n_examinees=args.examinees,
            min_items=args.min_items,
            max_standard_error=args.max_se,
            max_items=args.max_items or None,
            seed=args.seed,
        )
        bank = generate_item_bank(n_items=args.items, seed=args.seed)
        result = run_simulation(bank, config)
    except ValueError as exc:
        logger.error("CAT simulation failed: %s", exc)
        return 2

    summary = {
        "examinees": len(result.examinee_results),
        "mean_items": round(result.mean_items, 2),
        "median_items": result.median_items,
        "mean_bias": round(result.mean_bias, 4),
        "rmse": round(result.rmse, 4),
        "precision_rate": round(result.precision_rate, 4),
        "stopping_reasons": result.stopping_reason_counts,
    }
    print(json.dumps(summary), flush=True)
    return 0


if __name__ == "__main__":
    sys.exit(main())
