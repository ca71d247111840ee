"""Interface contracts: requirement AST, contract record and compiler."""

from .requirements import (
    CANDIDATE, AlternativeReq, BindingReq, ConditionalReq, Expression, MethodReq,
    ParamConstraint, ReturnObligation, SequenceReq, SubtypeReq,
)
from .contract import Contract
from .compiler import ContractCompiler

__all__ = [
    'CANDIDATE', 'AlternativeReq', 'BindingReq', 'ConditionalReq', 'Expression', 'MethodReq',
    'ParamConstraint', 'ReturnObligation', 'SequenceReq', 'SubtypeReq',
    'Contract', 'ContractCompiler',
]
