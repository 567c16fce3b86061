"""Enrich a keyword CSV with LLM classification and SERP-based KGR.

Thin wrapper around :mod:`kgrlens.cli` (installed as ``kgrlens-enrich``):
    python scripts/enrich_keywords.py --input keywords.csv --category ... --brand ...
"""

from kgrlens.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
