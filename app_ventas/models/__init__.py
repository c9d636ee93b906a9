# ==============================================================================
# CAPA DE MODELOS - Estructuras de datos del sistema
# ==============================================================================
# Entidades del dominio como dataclasses, independientes del almacén.
# ==============================================================================

from .entities import (
    # Catálogo
    Product,

    # Sucursales
    Branch,
    BranchStock,

    # Ventas
    Sale,

    # Helpers
    to_number,
    clean_number,
    parse_date,
    parse_input_date,
    format_date,
)

__all__ = [
    'Product',
    'Branch',
    'BranchStock',
    'Sale',
    'to_number',
    'clean_number',
    'parse_date',
    'parse_input_date',
    'format_date',
]
