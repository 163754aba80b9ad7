"""
cosmwasm-guard: static analysis for CosmWasm smart contracts

Pipeline:
    source text -> syntax tree -> (IR builder | incremental cache)
    -> merged contract model + SSA IR -> detector engine -> findings
"""

__version__ = "0.3.0"

__all__ = ["__version__"]
