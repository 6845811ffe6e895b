"""Small online training loop demonstrating dyadic factor usage."""
from __future__ import annotations

import numpy as np

from dyadfactor import DyadicCoordinator, LearnerConfig


def make_toy_model(seed: int) -> DyadicCoordinator:
    config = LearnerConfig(mu0=0.5, lambda_=1e-6, prior="l1")
    return DyadicCoordinator(num_factors=2, config=config, rng=np.random.default_rng(seed))


def target_probability(left: int, right: int) -> float:
    # users with even IDs like items with even IDs, and so on
    return 0.9 if (left + right) % 2 == 0 else 0.1


def main(seed: int = 7) -> None:
    rng = np.random.default_rng(seed)
    model = make_toy_model(seed)
    for step in range(2000):
        left = int(rng.integers(0, 20))
        right = int(rng.integers(0, 20))
        label = int(rng.random() < target_probability(left, right))
        phat = model.train(left, right, label)
        if step % 500 == 0:
            print(f"step={step:04d} pair=({left:2d},{right:2d}) y={label} phat={phat:.3f}")

    print("P(0, 0) =", round(model.classify_scalar(0, 0), 3))
    print("P(0, 1) =", round(model.classify_scalar(0, 1), 3))


if __name__ == "__main__":
    main()
