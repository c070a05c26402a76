"""
Kernel layer.

Small, auditable, integer-only kernels used by the engine. Kernels know
nothing about markets, sides or ledgers; `cpamm/core/` wraps them with the
AMM's conventions.
"""
