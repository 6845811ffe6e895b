"""Train a dyadic factor model on synthetic data and compare to the Bayes rate."""
from __future__ import annotations

import argparse
import json
import logging
import os
import pathlib
import sys
import time
from contextlib import contextmanager

import numpy as np
from dotenv import load_dotenv

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

load_dotenv(ROOT / ".env")

from dyadfactor import DyadicCoordinator, DyadicTrainer, LearnerConfig
from dyadfactor.evaluation import make_synthetic_events, split_events

LOGGER_NAME = "train_dyadic"
logger = logging.getLogger(LOGGER_NAME)


def _configure_logging(level: str) -> None:
    """Configure a stdout logger once per process."""

    if logging.getLogger().handlers:
        return
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="[train_dyadic][%(asctime)s] %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stdout,
    )


@contextmanager
def log_section(name: str):
    """Context manager that logs the start/end (with duration) of a section."""

    logger.info("Starting %s", name)
    start = time.perf_counter()
    try:
        yield
    finally:
        logger.info("Finished %s in %.2f s", name, time.perf_counter() - start)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--n-left", type=int, default=200, help="Number of left entities")
    parser.add_argument("--n-right", type=int, default=200, help="Number of right entities")
    parser.add_argument("--factors", type=int, default=2, help="Latent factors per entity")
    parser.add_argument("--retention", type=float, default=0.8, help="Training fraction")
    parser.add_argument("--epochs", type=int, default=10, help="Passes over the training data")
    parser.add_argument("--mu0", type=float, default=0.1, help="Base learning rate")
    parser.add_argument("--lambda", dest="lam", type=float, default=1e-8, help="Regularization")
    parser.add_argument("--prior", choices=("l1", "l2"), default="l1")
    parser.add_argument("--schedule", choices=("inverse", "inverse_sqrt"), default="inverse_sqrt")
    parser.add_argument(
        "--bias-transfer",
        choices=("additive", "multiplicative", "none"),
        default="additive",
    )
    parser.add_argument("--metrics-path", type=str, default=None, help="Optional JSONL metrics output")
    parser.add_argument("--seed", type=int, default=int(os.environ.get("DYAD_SEED", "17")))
    parser.add_argument("--log-level", default=os.environ.get("DYAD_LOG_LEVEL", "INFO"))
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    _configure_logging(args.log_level)
    rng = np.random.default_rng(args.seed)

    with log_section("data generation"):
        events = make_synthetic_events(args.n_left, args.n_right, args.factors, rng=rng)
        train_events, test_events = split_events(events, args.retention, rng=rng)
        logger.info("Generated %d train / %d test events", len(train_events), len(test_events))

    config = LearnerConfig(
        mu0=args.mu0,
        lambda_=args.lam,
        prior=args.prior,
        schedule=args.schedule,
    )
    model = DyadicCoordinator(
        args.factors,
        config,
        bias_transfer=args.bias_transfer,
        rng=rng,
    )
    trainer = DyadicTrainer(model, rng=rng)

    with log_section("training"):
        history = trainer.fit(train_events, test_events, epochs=args.epochs)

    if args.metrics_path:
        path = pathlib.Path(args.metrics_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as handle:
            for epoch, loss, evaluation in zip(
                history.epochs, history.train_losses, history.evaluations
            ):
                record = {"epoch": epoch, "train_loss": loss}
                if evaluation is not None:
                    record.update(
                        error=evaluation.error,
                        log_likelihood=evaluation.log_likelihood,
                        bayes_error=evaluation.bayes_error,
                        bayes_log_likelihood=evaluation.bayes_log_likelihood,
                    )
                handle.write(json.dumps(record) + "\n")
        logger.info("Wrote metrics to %s", path)


if __name__ == "__main__":
    main()
