import logging
import re
from dataclasses import dataclass

import numpy as np
from langchain_openai import OpenAIEmbeddings

logger = logging.getLogger(__name__)

EMBEDDING_MODEL = "text-embedding-3-small"
SENTENCE_RE = re.compile(r"[^.!?]+(?:[.!?]+|$)")


def chunk_text(text, chunk_size=500):
    """Pack whole sentences into chunks of roughly ``chunk_size`` characters."""
    sentences = [sentence.strip() for sentence in SENTENCE_RE.findall(text) if sentence.strip()] or [text]
    chunks = []
    current = ""

    for sentence in sentences:
        if len(current + sentence) > chunk_size and current:
            chunks.append(current.strip())
            current = sentence
        else:
            current += " " + sentence

    if current.strip():
        chunks.append(current.strip())
    return chunks


@dataclass
class RankedChunk:
    text: str
    similarity: float
    index: int


class ChunkIndex:
    """In-memory embedding index over the chunks of the uploaded documents."""

    def __init__(self, embeddings):
        self.embeddings = embeddings
        self.chunks = []
        self._vectors = None

    def __len__(self):
        return len(self.chunks)

    def add_text(self, text, chunk_size=500):
        chunks = [chunk for chunk in chunk_text(text, chunk_size) if chunk]
        if not chunks:
            return 0
        vectors = np.asarray(self.embeddings.embed_documents(chunks), dtype=float)
        self._vectors = vectors if self._vectors is None else np.vstack([self._vectors, vectors])
        self.chunks.extend(chunks)
        logger.info("Embedded %d chunk(s), index now holds %d", len(chunks), len(self.chunks))
        return len(chunks)

    def search(self, query, k=5):
        if not self.chunks or not query.strip():
            return []
        query_vector = np.asarray(self.embeddings.embed_query(query), dtype=float)
        norms = np.linalg.norm(self._vectors, axis=1) * np.linalg.norm(query_vector)
        with np.errstate(divide="ignore", invalid="ignore"):
            scores = np.where(norms > 0, self._vectors @ query_vector / norms, 0.0)

        order = np.argsort(-scores, kind="stable")[:k]
        return [RankedChunk(self.chunks[i], float(scores[i]), int(i)) for i in order]


def build_embeddings(api_key, model=EMBEDDING_MODEL):
    return OpenAIEmbeddings(api_key=api_key, model=model)
