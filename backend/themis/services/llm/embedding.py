"""
Embedding generation and vector similarity.

Used for initiative de-duplication and semantic lookup. Embeddings are cached
in-process per (model, text) so unchanged initiatives are not re-embedded.
"""
import asyncio
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
from pydantic import BaseModel

from themis.core.cache import TTLCache, hash_text
from themis.core.logging import get_logger
from themis.models.llm import Embedding, EmbeddingRequest
from themis.models.scoring import DuplicatePair, SimilarityResult
from themis.services.llm.llm_service import LLMService

logger = get_logger(__name__)


class VectorCandidate(BaseModel):
    id: str
    vector: List[float]
    metadata: Optional[Dict[str, Any]] = None


class InitiativeText(BaseModel):
    """Initiative as seen by duplicate detection; vector is filled in when missing."""
    id: str
    title: str
    description: str = ""
    vector: Optional[List[float]] = None


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine similarity of two vectors, clipped to [-1, 1].

    Returns 0.0 when either vector has zero magnitude.

    Raises:
        ValueError: Vectors differ in length
    """
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.shape != vb.shape:
        raise ValueError("Vectors must have the same dimensions")

    norm_product = float(np.dot(va, va)) * float(np.dot(vb, vb))
    if norm_product == 0.0:
        return 0.0

    # sqrt of the product (not product of sqrts) keeps identical vectors at exactly 1.0
    similarity = float(np.dot(va, vb)) / float(np.sqrt(norm_product))
    return float(np.clip(similarity, -1.0, 1.0))


class EmbeddingService:
    """Embeddings through LLMService plus similarity search helpers."""

    def __init__(
        self,
        llm_service: LLMService,
        cache: Optional[TTLCache[Embedding]] = None,
    ):
        self.llm_service = llm_service
        self.cache = cache if cache is not None else TTLCache()

    async def generate_embedding(self, text: str, model: Optional[str] = None) -> Embedding:
        key = TTLCache.generate_key("embedding", model or "default", hash_text(text))
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        embedding = await self.llm_service.embed(EmbeddingRequest(text=text, model=model))
        self.cache.set(key, embedding)
        return embedding

    async def generate_embeddings(self, texts: List[str], model: Optional[str] = None) -> List[Embedding]:
        return list(await asyncio.gather(*(self.generate_embedding(t, model) for t in texts)))

    def cosine_similarity(self, a: Sequence[float], b: Sequence[float]) -> float:
        return cosine_similarity(a, b)

    def find_similar(
        self,
        query_vector: Sequence[float],
        candidates: List[VectorCandidate],
        threshold: float = 0.8,
        limit: int = 10,
    ) -> List[SimilarityResult]:
        """Candidates with similarity >= threshold, most similar first, at most limit."""
        results = []
        for candidate in candidates:
            similarity = cosine_similarity(query_vector, candidate.vector)
            if similarity >= threshold:
                results.append(
                    SimilarityResult(id=candidate.id, similarity=similarity, metadata=candidate.metadata)
                )
        results.sort(key=lambda r: r.similarity, reverse=True)
        return results[:limit]

    async def detect_duplicates(
        self,
        initiatives: List[InitiativeText],
        threshold: float = 0.85,
        batch_size: int = 16,
    ) -> List[DuplicatePair]:
        """
        All pairs of initiatives whose similarity is >= threshold, most similar first.

        Initiatives without a vector are embedded from "title\\ndescription"
        in batches of batch_size. Inputs are not mutated.
        """
        vectors: List[Optional[List[float]]] = [i.vector for i in initiatives]
        missing = [idx for idx, vector in enumerate(vectors) if vector is None]

        for start in range(0, len(missing), batch_size):
            batch = missing[start:start + batch_size]
            texts = [f"{initiatives[idx].title}\n{initiatives[idx].description}" for idx in batch]
            embeddings = await self.generate_embeddings(texts)
            for idx, embedding in zip(batch, embeddings):
                vectors[idx] = embedding.vector

        duplicates = []
        for i in range(len(initiatives)):
            for j in range(i + 1, len(initiatives)):
                similarity = cosine_similarity(vectors[i], vectors[j])
                if similarity >= threshold:
                    duplicates.append(
                        DuplicatePair(id1=initiatives[i].id, id2=initiatives[j].id, similarity=similarity)
                    )

        duplicates.sort(key=lambda d: d.similarity, reverse=True)
        logger.info(
            "duplicates_detected",
            initiatives=len(initiatives),
            embedded=len(missing),
            duplicates=len(duplicates),
            threshold=threshold,
        )
        return duplicates
