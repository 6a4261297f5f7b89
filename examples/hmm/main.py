"""Command-line interface comparing Lightweight MH on the HMM with exact marginals."""

import argparse
import logging

import jax.numpy as jnp

from tracemh import chain, empirical_marginal, setup_logging
from tracemh.extras.hmm import STATES, VALUES, exact_marginals, hmm


def main():
    """Main CLI entry point for the HMM posterior comparison."""
    parser = argparse.ArgumentParser(
        description="Lightweight MH on a 3-state HMM with Gaussian emissions"
    )
    parser.add_argument(
        "--steps", type=int, default=10_000, help="MH steps per chain (default: 10000)"
    )
    parser.add_argument(
        "--burn-in", type=int, default=1_000, help="Discarded steps (default: 1000)"
    )
    parser.add_argument(
        "--chains", type=int, default=4, help="Number of chains (default: 4)"
    )
    parser.add_argument("--seed", type=int, default=0, help="PRNG seed (default: 0)")
    parser.add_argument(
        "--verbose", action="store_true", help="Log one summary line per chain"
    )

    args = parser.parse_args()
    if args.verbose:
        setup_logging(logging.INFO)

    print("HMM posterior marginals: Lightweight MH vs forward-backward")
    print("=" * 60)
    print("Configuration:")
    print(f"  - Observations: {len(VALUES)}")
    print(f"  - Steps per chain: {args.steps} (burn-in {args.burn_in})")
    print(f"  - Chains: {args.chains}")
    print()

    result = chain(
        hmm(),
        args.seed,
        args.steps,
        burn_in=args.burn_in,
        n_chains=args.chains,
        progress_bar=True,
    )
    answers = result.flat_answers()
    exact = exact_marginals()

    header = "  t | " + " | ".join(f"p(x={s:+d}) mh / exact" for s in STATES)
    print(header)
    print("-" * len(header))
    worst = 0.0
    for t in range(len(VALUES) + 1):
        estimate = empirical_marginal([answer[t] for answer in answers], STATES)
        worst = max(worst, float(jnp.max(jnp.abs(estimate - exact[t]))))
        cells = " | ".join(
            f"{float(e):.3f} / {float(x):.3f}".rjust(19)
            for e, x in zip(estimate, exact[t])
        )
        print(f"{t:3d} | {cells}")

    print()
    print(f"Acceptance rate: {result.acceptance_rate:.3f}")
    print(f"Largest absolute error: {worst:.4f}")


if __name__ == "__main__":
    main()
