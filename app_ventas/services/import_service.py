# ==============================================================================
# SERVICIO DE IMPORTACIÓN CSV
# ==============================================================================
# Carga masiva de productos al catálogo desde un archivo CSV.
#
# Encabezados obligatorios (en cualquier orden, se permiten columnas extra):
#   date, sku, barcode, brand, name, stock, cost, shippingCost
#
# REGLA PRINCIPAL: todo o nada.
# - Si falta un encabezado se rechaza el archivo completo.
# - Si alguna fila tiene errores NO se escribe ningún producto y se
#   informan todos los errores encontrados.
# - Si todo es válido, los productos se guardan en un único lote atómico.
# ==============================================================================

import csv
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from app_ventas import config
from app_ventas.exceptions import StoreError, ValidationError
from app_ventas.models import Product, clean_number, parse_input_date, to_number
from app_ventas.performance_logger import log_event, profile_function
from app_ventas.repositories.inventory_repository import InventoryRepository
from app_ventas.services.results import store_failure, validation_failure


def _split_row(line: str) -> List[str]:
    return [value.strip() for value in next(csv.reader([line]))]


def _parse_row(row_number: int, record: Dict[str, str]) -> Product:
    """
    Convierte una fila (ya emparejada con los encabezados) en Product.

    Raises:
        ValueError: con el mensaje de error de la fila
    """
    # Celda vacía en stock/costo cuenta como 0
    stock = to_number(record['stock'] or 0)
    cost = to_number(record['cost'] or 0)
    if stock is None or cost is None:
        raise ValueError(f'Fila {row_number}: stock o cost no es numérico')
    if stock < 0 or cost < 0:
        raise ValueError(f'Fila {row_number}: stock o cost no puede ser negativo')

    shipping_cost = to_number(record['shippingCost'])
    if shipping_cost is None or shipping_cost < 0:
        shipping_cost = 0

    try:
        product_date = parse_input_date(record['date'])
    except ValueError:
        raise ValueError(f'Fila {row_number}: fecha inválida "{record["date"]}" (use AAAA-MM-DD)')

    return Product(
        id='',
        name=record['name'] or f'Producto fila {row_number}',
        brand=record['brand'],
        stock=clean_number(stock),
        cost=clean_number(cost),
        shipping_cost=clean_number(float(shipping_cost)),
        sku=record['sku'],
        barcode=record['barcode'],
        date=product_date or datetime.now(),
        price=0,
    )


def parse_csv(text: str) -> Tuple[List[Product], List[str]]:
    """
    Interpreta el contenido de un CSV de productos sin escribir nada.

    Args:
        text: Contenido completo del archivo

    Returns:
        Tupla (productos_validos, errores_por_fila)

    Raises:
        ValidationError: archivo vacío, solo encabezados o encabezados faltantes
    """
    text = (text or '').lstrip('\ufeff')
    lines = [line for line in text.splitlines() if line.strip()]
    if len(lines) <= 1:
        raise ValidationError('El archivo CSV está vacío o solo tiene encabezados', field='file')

    headers = _split_row(lines[0])
    missing = [h for h in config.CSV_REQUIRED_HEADERS if h not in headers]
    if missing:
        raise ValidationError(
            f'Faltan encabezados obligatorios: {", ".join(missing)}',
            field='file',
            details={'missing_headers': missing},
        )

    products = []
    errors = []
    for index, line in enumerate(lines[1:], start=1):
        row_number = index + 1
        values = _split_row(line)
        if len(values) != len(headers):
            errors.append(f'Fila {row_number}: la cantidad de columnas no coincide con los encabezados')
            continue
        record = dict(zip(headers, values))
        try:
            products.append(_parse_row(row_number, record))
        except ValueError as exc:
            errors.append(str(exc))

    return products, errors


class ImportService:
    """Importación masiva de productos."""

    def __init__(self, inventory_repo: InventoryRepository):
        self.inventory_repo = inventory_repo

    @profile_function(name='Importar CSV')
    def import_csv(self, uid: str, text: str, source: Optional[str] = None) -> Dict[str, Any]:
        """
        Importa productos desde CSV (todo o nada).

        Args:
            uid: Usuario dueño
            text: Contenido del archivo
            source: Nombre del archivo subido (solo para el log de actividad)

        Returns:
            {'ok': True, 'count', 'ids'} o
            {'ok': False, 'error', 'field': 'file', 'errors': [...], 'code'}
        """
        try:
            products, errors = parse_csv(text)
        except ValidationError as exc:
            return validation_failure(exc, errors=[])

        if errors:
            return validation_failure(
                ValidationError('El archivo tiene errores; no se importó ningún producto', field='file'),
                errors=errors,
            )
        if not products:
            return validation_failure(
                ValidationError('No se encontraron productos válidos en el archivo', field='file'),
                errors=[],
            )

        try:
            batch = self.inventory_repo.new_batch(uid)
            ids = [self.inventory_repo.add_to_batch(batch, p.to_dict()) for p in products]
            batch.commit()
        except StoreError as exc:
            return store_failure('Importar CSV', exc, uid, 'No se pudieron guardar los productos', errors=[])

        log_event('Importación CSV', uid, {'archivo': source or '-', 'productos': len(ids)})
        return {'ok': True, 'count': len(ids), 'ids': ids}
