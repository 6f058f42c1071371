"""Allow running crucible_analysis as a module: python -m crucible_analysis."""

from crucible_analysis.cli import main

if __name__ == "__main__":
    main()
