# ==============================================================================
# SERVICIO DE SUCURSALES Y DISTRIBUCIÓN
# ==============================================================================
# - Alta y renombre de sucursales (no se eliminan).
# - Distribución: asigna unidades del catálogo a una sucursal.
#   stock_sucursal_despues = stock_sucursal_antes + cantidad
#   El stock del catálogo central NO se descuenta.
# - Vista de sucursal: stock asignado unido al producto maestro y ventas.
# ==============================================================================

from typing import Any, Dict, List, Optional

from app_ventas.exceptions import StoreError, ValidationError
from app_ventas.models import to_number
from app_ventas.performance_logger import log_event, profile_function
from app_ventas.repositories.branch_repository import BranchRepository
from app_ventas.repositories.branch_stock_repository import BranchStockRepository
from app_ventas.repositories.inventory_repository import InventoryRepository
from app_ventas.repositories.sales_repository import SalesRepository
from app_ventas.services.inventory_service import InventoryService
from app_ventas.services.results import not_found, store_failure, validation_failure
from app_ventas.services.stats_service import sales_stats


def parse_quantity(value: Any, field: str = 'quantity') -> int:
    """
    Cantidad de unidades: entero positivo.

    Raises:
        ValidationError: vacía, no numérica, decimal o <= 0
    """
    number = to_number(value)
    if number is None:
        raise ValidationError('La cantidad es obligatoria', field=field)
    if not number.is_integer() or number <= 0:
        raise ValidationError('La cantidad debe ser un entero mayor que 0', field=field)
    return int(number)


def join_branch_stock(entries: List[Dict[str, Any]], products: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Une cada registro de stock de sucursal con su producto maestro.

    Los campos del registro (id, stock, branchId, productId) tienen prioridad
    sobre los del producto. Si el producto fue eliminado del catálogo el
    registro se conserva marcado con orphaned=True.
    """
    by_id = {p.get('id'): p for p in products}
    joined = []
    for entry in entries:
        product = by_id.get(entry.get('productId'))
        item = dict(product) if product else {'name': ''}
        item.update(entry)
        item['branchInventoryId'] = entry.get('id')
        item['orphaned'] = product is None
        joined.append(item)
    return joined


class BranchService:
    """
    Servicio de sucursales.

    Responsabilidades:
    - Alta / renombre de sucursales
    - Distribución de stock a sucursales
    - Vista por sucursal (stock y ventas)
    """

    def __init__(
        self,
        branch_repo: BranchRepository,
        branch_stock_repo: BranchStockRepository,
        inventory_repo: InventoryRepository,
        sales_repo: SalesRepository,
        inventory_service: InventoryService,
    ):
        self.branch_repo = branch_repo
        self.branch_stock_repo = branch_stock_repo
        self.inventory_repo = inventory_repo
        self.sales_repo = sales_repo
        self.inventory_service = inventory_service

    # =========================================================================
    # SUCURSALES
    # =========================================================================

    @staticmethod
    def _branch_name(name: Any) -> str:
        name = str(name).strip() if name is not None else ''
        if not name:
            raise ValidationError('El nombre de la sucursal es obligatorio', field='name')
        return name

    def list_branches(self, uid: str) -> List[Dict[str, Any]]:
        return self.branch_repo.list_branches(uid)

    def add_branch(self, uid: str, name: Any) -> Dict[str, Any]:
        """
        Crea una sucursal.

        Returns:
            {'ok': True, 'id', 'branch'} o error
        """
        try:
            name = self._branch_name(name)
        except ValidationError as exc:
            return validation_failure(exc)

        try:
            branch_id = self.branch_repo.create_branch(uid, name)
        except StoreError as exc:
            return store_failure('Agregar sucursal', exc, uid, 'No se pudo guardar la sucursal')

        log_event('Sucursal agregada', uid, {'id': branch_id, 'nombre': name})
        return {'ok': True, 'id': branch_id, 'branch': {'id': branch_id, 'name': name}}

    def rename_branch(self, uid: str, branch_id: str, name: Any) -> Dict[str, Any]:
        """Renombra una sucursal. Las ventas pasadas conservan el nombre anterior."""
        try:
            name = self._branch_name(name)
        except ValidationError as exc:
            return validation_failure(exc)

        try:
            renamed = self.branch_repo.rename_branch(uid, branch_id, name)
        except StoreError as exc:
            return store_failure('Renombrar sucursal', exc, uid, 'No se pudo renombrar la sucursal')
        if not renamed:
            return not_found('Sucursal no encontrada', field='branchId')

        log_event('Sucursal renombrada', uid, {'id': branch_id, 'nombre': name})
        return {'ok': True, 'id': branch_id, 'branch': {'id': branch_id, 'name': name}}

    # =========================================================================
    # DISTRIBUCIÓN
    # =========================================================================

    @profile_function(name='Distribuir stock')
    def distribute(self, uid: str, branch_id: str, product_id: str, quantity: Any) -> Dict[str, Any]:
        """
        Suma ``quantity`` unidades de un producto al stock de una sucursal.

        El alta/incremento del registro (sucursal, producto) es una sola
        operación atómica del almacén: dos distribuciones simultáneas suman
        ambas y nunca crean registros duplicados.

        Returns:
            {'ok': True, 'entry_id', 'stock', 'created'} o error
        """
        try:
            branch = self.branch_repo.get_branch(uid, branch_id)
            product = self.inventory_repo.get_product(uid, product_id)
        except StoreError as exc:
            return store_failure('Distribuir stock', exc, uid, 'No se pudo distribuir el stock')

        try:
            if branch is None:
                raise ValidationError('Seleccione una sucursal', field='branchId')
            if product is None:
                raise ValidationError('Seleccione un producto del catálogo', field='productId')
            quantity = parse_quantity(quantity)
        except ValidationError as exc:
            return validation_failure(exc)

        try:
            entry_id, stock, created = self.branch_stock_repo.add_stock(uid, branch_id, product_id, quantity)
        except StoreError as exc:
            return store_failure('Distribuir stock', exc, uid, 'No se pudo distribuir el stock')

        log_event('Stock distribuido', uid, {
            'sucursal': branch.get('name'),
            'producto': product.get('name'),
            'cantidad': quantity,
            'stock_sucursal': stock,
        })
        return {'ok': True, 'entry_id': entry_id, 'stock': stock, 'created': created}

    # =========================================================================
    # VISTAS
    # =========================================================================

    def available_products(self, uid: str, branch_id: str) -> List[Dict[str, Any]]:
        """Productos con stock asignado a la sucursal (opciones del formulario de venta)."""
        entries = self.branch_stock_repo.list_entries(uid, branch_id)
        products = self.inventory_repo.list_all(uid)
        return [p for p in join_branch_stock(entries, products) if not p['orphaned']]

    def branch_overview(self, uid: str, branch_id: str) -> Dict[str, Any]:
        """
        Stock y ventas de una sucursal.

        Returns:
            {'ok': True, 'branch', 'products', 'sales', 'stats'} o error
        """
        try:
            branch: Optional[Dict[str, Any]] = self.branch_repo.get_branch(uid, branch_id)
            if branch is None:
                return not_found('Sucursal no encontrada', field='branchId')
            entries = self.branch_stock_repo.list_entries(uid, branch_id)
            products = self.inventory_repo.list_all(uid)
            sales = self.sales_repo.list_for_branch(uid, branch_id)
        except StoreError as exc:
            return store_failure('Vista de sucursal', exc, uid, 'No se pudieron leer los datos de la sucursal')

        joined = join_branch_stock(entries, products)
        for item in joined:
            item['stockBadge'] = self.inventory_service.stock_badge(item.get('stock'))

        return {
            'ok': True,
            'branch': branch,
            'products': joined,
            'sales': sales,
            'stats': sales_stats(sales),
        }
