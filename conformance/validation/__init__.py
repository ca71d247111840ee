"""Validation of candidate types against compiled contracts."""

from .context import Mode, ValidationContext, default_scopes
from .executor import ContractValidator, ValidatorExecutor

__all__ = ['Mode', 'ValidationContext', 'default_scopes', 'ContractValidator', 'ValidatorExecutor']
