from brd_builder.retrieval import ChunkIndex, chunk_text

KEYWORDS = ("claims", "fraud", "payments")


class KeywordEmbeddings:
    """Counts keyword hits so similarity follows the vocabulary of each chunk."""

    def _embed(self, text):
        lowered = text.lower()
        return [float(lowered.count(word)) for word in KEYWORDS]

    def embed_documents(self, texts):
        return [self._embed(text) for text in texts]

    def embed_query(self, text):
        return self._embed(text)


def test_chunk_text_packs_sentences():
    text = "One sentence here. " * 40
    chunks = chunk_text(text, chunk_size=100)
    assert len(chunks) > 1
    assert all(chunk.endswith(".") for chunk in chunks)
    assert all(len(chunk) <= 100 for chunk in chunks)


def test_chunk_text_without_punctuation():
    assert chunk_text("no terminal punctuation") == ["no terminal punctuation"]


def test_chunk_text_keeps_unpunctuated_tail():
    assert chunk_text("First sentence. Second part without a full stop") == [
        "First sentence. Second part without a full stop"
    ]
    chunks = chunk_text("First sentence. Last bullet line", chunk_size=10)
    assert chunks == ["First sentence.", "Last bullet line"]


def test_search_ranks_by_similarity():
    index = ChunkIndex(KeywordEmbeddings())
    index.add_text("Claims are captured online. Fraud scoring flags fraud cases. Payments settle weekly.", chunk_size=10)
    assert len(index) == 3

    results = index.search("fraud", k=2)
    assert [result.text for result in results][0] == "Fraud scoring flags fraud cases."
    assert results[0].similarity > results[1].similarity
    assert len(results) == 2


def test_search_on_empty_index():
    assert ChunkIndex(KeywordEmbeddings()).search("fraud") == []


def test_zero_vectors_do_not_break_ranking():
    index = ChunkIndex(KeywordEmbeddings())
    index.add_text("Nothing relevant. Claims only.", chunk_size=5)
    results = index.search("fraud")
    assert all(result.similarity == 0.0 for result in results)
