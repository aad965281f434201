from .config import DOCX, PDF, RenderConfig, docx_profile, pdf_profile
from .diagrams import DiagramSource, extract_mermaid_blocks
from .errors import BrdBuilderError, ExtractionError, GenerationError, InputEmptyError, RecoverableAssetError
from .renderer import RenderResult, render, render_document

__all__ = [
    "DOCX",
    "PDF",
    "BrdBuilderError",
    "DiagramSource",
    "ExtractionError",
    "GenerationError",
    "InputEmptyError",
    "RecoverableAssetError",
    "RenderConfig",
    "RenderResult",
    "docx_profile",
    "extract_mermaid_blocks",
    "pdf_profile",
    "render",
    "render_document",
]
