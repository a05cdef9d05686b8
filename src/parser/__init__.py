"""Script parser package: line-oriented source text -> RootAST."""

from src.parser.ast import BeginAST, ObjectAST, RootAST, TopicAST, TriggerAST
from src.parser.parser import ScriptParser

__all__ = [
    "BeginAST",
    "ObjectAST",
    "RootAST",
    "TopicAST",
    "TriggerAST",
    "ScriptParser",
]
