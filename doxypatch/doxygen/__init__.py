"""Doxygen block analysis and prose merging."""

from .merge import merge_doc_header
from .skeleton import DocAnalysis, DocSkeleton, analyze, parse_doc_block

__all__ = ["DocAnalysis", "DocSkeleton", "analyze", "merge_doc_header", "parse_doc_block"]
