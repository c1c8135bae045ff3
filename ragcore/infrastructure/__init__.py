"""
Infrastructure Layer

Adapters concretos de los puertos del dominio: proveedores (Google / fakes),
cache de embeddings, chunker, store en memoria y pool de ingesta.
Se ensamblan en `ragcore.container`.
"""
