"""Source text as a tree of classified nodes."""
from implgen.syntax.classifier import RustGrammar
from implgen.syntax.interface import FragmentGrammar, rewrite, render

__all__ = ["RustGrammar", "FragmentGrammar", "rewrite", "render"]
