"""
Core types for the token dictionary, datasets and transition models.
"""

from typing_extensions import TypeAliasType

Token = TypeAliasType("Token", int)
Word = TypeAliasType("Word", str)
Context = TypeAliasType("Context", tuple[Token, ...])
Distribution = TypeAliasType("Distribution", dict[Token, int])
TransitionTable = TypeAliasType("TransitionTable", dict[Context, Distribution])
RemapTable = TypeAliasType("RemapTable", dict[Token, Token])
