"""
Search indexing and query engine package.

- analyzers: Tokenizer and token filters
- models: Postings, index and result types
- stats: idf and index statistics
- indexer: Parallel index construction
- engine: Query scoring and ranking
- snapshot: Binary snapshot codec
"""
