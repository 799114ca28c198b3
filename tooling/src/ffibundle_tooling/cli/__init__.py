"""ffibundle command-line interface (build, plan, targets)."""
