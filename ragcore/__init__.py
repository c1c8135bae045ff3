"""
ragcore: pipeline RAG (chunking → embeddings → retrieval → respuesta con fuentes).

Punto de entrada recomendado: `ragcore.container.get_rag_pipeline()`.
"""

__version__ = "0.1.0"
