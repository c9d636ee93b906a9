# ==============================================================================
# SERVICIO DE INVENTARIO
# ==============================================================================
# Alta, edición y baja de productos del catálogo central, más las vistas
# del inventario (alerta de stock bajo, color del stock).
#
# El precio de venta NO es parte del catálogo: se guarda siempre 0 y se
# define en cada venta.
# ==============================================================================

from datetime import datetime
from typing import Any, Dict, List, Optional

from app_ventas import config
from app_ventas.exceptions import StoreError, ValidationError
from app_ventas.models import Product, clean_number, parse_input_date, to_number
from app_ventas.performance_logger import log_event, profile_function
from app_ventas.repositories.inventory_repository import InventoryRepository, search_products
from app_ventas.services.results import not_found, store_failure, validation_failure


def _text(data: Dict[str, Any], key: str) -> str:
    value = data.get(key)
    return str(value).strip() if value is not None else ''


def _required_amount(data: Dict[str, Any], key: str, label: str):
    number = to_number(data.get(key))
    if number is None:
        raise ValidationError(f'{label} es obligatorio y debe ser numérico', field=key)
    if number < 0:
        raise ValidationError(f'{label} no puede ser negativo', field=key)
    return clean_number(number)


def build_product(data: Dict[str, Any], product_id: str = '', current: Optional[Product] = None) -> Product:
    """
    Valida un formulario de producto y construye la entidad.

    Args:
        data: Campos del formulario (name, brand, stock, cost, shippingCost,
              date 'YYYY-MM-DD', sku, barcode)
        product_id: ID del documento (vacío en altas)
        current: Producto existente, en ediciones (conserva fecha y precio)

    Raises:
        ValidationError: nombre vacío, stock/costo faltante o inválido,
                         costo de envío negativo, fecha inválida
    """
    name = _text(data, 'name')
    if not name:
        raise ValidationError('El nombre es obligatorio', field='name')

    stock = _required_amount(data, 'stock', 'El stock')
    cost = _required_amount(data, 'cost', 'El costo')

    shipping_cost = to_number(data.get('shippingCost'))
    if shipping_cost is None:
        shipping_cost = 0
    if shipping_cost < 0:
        raise ValidationError('El costo de envío no puede ser negativo', field='shippingCost')

    try:
        product_date = parse_input_date(data.get('date'))
    except ValueError:
        raise ValidationError('Fecha inválida, use AAAA-MM-DD', field='date')
    if product_date is None:
        product_date = current.date if current and current.date else datetime.now()

    return Product(
        id=product_id,
        name=name,
        brand=_text(data, 'brand'),
        stock=stock,
        cost=cost,
        shipping_cost=clean_number(float(shipping_cost)),
        sku=_text(data, 'sku'),
        barcode=_text(data, 'barcode'),
        date=product_date,
        price=current.price if current else 0,
    )


class InventoryService:
    """
    Servicio del catálogo de productos.

    Responsabilidades:
    - CRUD de productos con validación
    - Indicadores de stock (bajo / advertencia)
    - Búsqueda
    """

    def __init__(
        self,
        inventory_repo: InventoryRepository,
        low_stock_threshold: int = config.LOW_STOCK_THRESHOLD,
        warning_threshold: int = config.WARNING_STOCK_THRESHOLD,
    ):
        """
        Args:
            inventory_repo: Repositorio del catálogo
            low_stock_threshold: Stock bajo (rojo) si stock < este valor
            warning_threshold: Advertencia (amarillo) si stock < este valor
        """
        self.inventory_repo = inventory_repo
        self.low_stock_threshold = low_stock_threshold
        self.warning_threshold = warning_threshold

    # =========================================================================
    # OPERACIONES DE PRODUCTOS
    # =========================================================================

    @profile_function(name='Agregar producto')
    def add_product(self, uid: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Agrega un producto al catálogo.

        Returns:
            {'ok': True, 'id', 'product'} o {'ok': False, 'error', 'field', 'code'}
        """
        try:
            product = build_product(data)
        except ValidationError as exc:
            return validation_failure(exc)

        try:
            product.id = self.inventory_repo.create_product(uid, product.to_dict())
        except StoreError as exc:
            return store_failure('Agregar producto', exc, uid, 'No se pudo guardar el producto')

        log_event('Producto agregado', uid, {'id': product.id, 'nombre': product.name, 'stock': product.stock})
        return {'ok': True, 'id': product.id, 'product': self._present(product.to_dict(), product.id)}

    @profile_function(name='Editar producto')
    def edit_product(self, uid: str, product_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """Reemplaza los datos editables de un producto existente."""
        try:
            existing = self.inventory_repo.get_product(uid, product_id)
        except StoreError as exc:
            return store_failure('Editar producto', exc, uid, 'No se pudo leer el producto')
        if existing is None:
            return not_found('Producto no encontrado', field='productId')

        try:
            product = build_product(data, product_id, Product.from_dict(product_id, existing))
        except ValidationError as exc:
            return validation_failure(exc)

        try:
            self.inventory_repo.update_product(uid, product_id, product.to_dict())
        except StoreError as exc:
            return store_failure('Editar producto', exc, uid, 'No se pudo actualizar el producto')

        log_event('Producto editado', uid, {'id': product_id, 'nombre': product.name, 'stock': product.stock})
        return {'ok': True, 'id': product_id, 'product': self._present(product.to_dict(), product_id)}

    def delete_product(self, uid: str, product_id: str) -> Dict[str, Any]:
        """
        Elimina un producto del catálogo.
        Los registros de stock por sucursal y las ventas no se modifican.
        """
        try:
            removed = self.inventory_repo.delete_product(uid, product_id)
        except StoreError as exc:
            return store_failure('Eliminar producto', exc, uid, 'No se pudo eliminar el producto')
        if removed is None:
            return not_found('Producto no encontrado', field='productId')

        log_event('Producto eliminado', uid, {'id': product_id, 'nombre': removed.get('name')})
        return {'ok': True, 'id': product_id}

    # =========================================================================
    # CONSULTAS
    # =========================================================================

    def stock_badge(self, stock) -> str:
        """'red' si stock < 5, 'yellow' si stock < 10, '' en otro caso."""
        stock = to_number(stock) or 0
        if stock < self.low_stock_threshold:
            return 'red'
        if stock < self.warning_threshold:
            return 'yellow'
        return ''

    def _present(self, doc: Dict[str, Any], product_id: str) -> Dict[str, Any]:
        item = dict(doc)
        item['id'] = product_id
        item['stockBadge'] = self.stock_badge(item.get('stock'))
        return item

    def present_products(self, products: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Agrega el color de stock a cada producto para la tabla."""
        return [self._present(p, p.get('id')) for p in products]

    def search(self, products: List[Dict[str, Any]], query: str) -> List[Dict[str, Any]]:
        """Filtra por nombre, SKU, código de barras o marca y agrega el color de stock."""
        return self.present_products(search_products(products, query))
