"""
Utilitários compartilhados: logging e exceções
"""
