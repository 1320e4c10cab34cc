"""Stateless similarity operations over face embeddings."""
from operator import attrgetter
from typing import Iterable, List, Sequence, Tuple, Union

import numpy as np

from facecatalog.core.exceptions import ShapeMismatchError
from facecatalog.domain.entities.face import FaceRecord
from facecatalog.domain.value_objects.matching import FaceMatch

VectorLike = Union[np.ndarray, Sequence[float]]
CorpusEntry = Union[FaceRecord, Tuple[str, VectorLike]]


def _as_vector(value: VectorLike) -> np.ndarray:
    return np.asarray(value, dtype=np.float64).reshape(-1)


def _entries(corpus: Iterable[CorpusEntry]) -> List[Tuple[str, np.ndarray]]:
    """Normalize a corpus of records or (id, vector) pairs, keeping its order."""
    entries = []
    for entry in corpus:
        if isinstance(entry, FaceRecord):
            entries.append((entry.face_id, entry.vector))
        else:
            face_id, vector = entry
            entries.append((face_id, _as_vector(vector)))
    return entries


class EmbeddingComparator:
    """Pairwise scoring, threshold matching and greedy clustering.

    Corpora are sequences of FaceRecord or (face_id, vector) pairs. Results
    depend only on the inputs and their order.
    """

    @staticmethod
    def cosine_similarity(a: VectorLike, b: VectorLike) -> float:
        """Cosine of the angle between two vectors.

        Inputs are normalized here, so arbitrary vectors are accepted. Returns
        0.0 when either vector has zero norm.

        Raises:
            ShapeMismatchError: If the vectors differ in length
        """
        va, vb = _as_vector(a), _as_vector(b)
        if va.shape != vb.shape:
            raise ShapeMismatchError(
                f"Cannot compare vectors of length {va.size} and {vb.size}",
                details={"left": int(va.size), "right": int(vb.size)}
            )

        denominator = float(np.linalg.norm(va)) * float(np.linalg.norm(vb))
        if denominator == 0.0:
            return 0.0
        score = float(np.dot(va, vb)) / denominator
        return min(1.0, max(-1.0, score))

    @staticmethod
    def euclidean_distance(a: VectorLike, b: VectorLike) -> float:
        """L2 distance between two vectors.

        Raises:
            ShapeMismatchError: If the vectors differ in length
        """
        va, vb = _as_vector(a), _as_vector(b)
        if va.shape != vb.shape:
            raise ShapeMismatchError(
                f"Cannot compare vectors of length {va.size} and {vb.size}",
                details={"left": int(va.size), "right": int(vb.size)}
            )
        return float(np.linalg.norm(va - vb))

    @classmethod
    def find_matches(
        cls,
        query: VectorLike,
        corpus: Iterable[CorpusEntry],
        threshold: float,
    ) -> List[FaceMatch]:
        """Corpus entries whose similarity to the query exceeds the threshold.

        Args:
            query: Query embedding
            corpus: Records or (face_id, vector) pairs
            threshold: Strict lower bound on cosine similarity

        Returns:
            Matches sorted by descending score; equal scores keep corpus order
        """
        matches = []
        for face_id, vector in _entries(corpus):
            score = cls.cosine_similarity(query, vector)
            if score > threshold:
                matches.append(FaceMatch(face_id, score))

        # sorted() is stable, also with reverse=True
        return sorted(matches, key=attrgetter("score"), reverse=True)

    @classmethod
    def cluster(
        cls,
        corpus: Iterable[CorpusEntry],
        threshold: float,
    ) -> List[List[str]]:
        """Greedy seed-based grouping.

        Walks the corpus in order. Each unassigned entry seeds a new cluster
        and pulls in every later unassigned entry whose similarity to the
        seed exceeds the threshold. Similarity is only checked against the
        seed, so membership is not transitive.

        Returns:
            Partition of the face ids; each cluster starts with its seed
        """
        entries = _entries(corpus)
        assigned = [False] * len(entries)
        clusters: List[List[str]] = []

        for i, (seed_id, seed_vector) in enumerate(entries):
            if assigned[i]:
                continue
            assigned[i] = True
            members = [seed_id]

            for j in range(i + 1, len(entries)):
                if assigned[j]:
                    continue
                if cls.cosine_similarity(seed_vector, entries[j][1]) > threshold:
                    members.append(entries[j][0])
                    assigned[j] = True

            clusters.append(members)

        return clusters
