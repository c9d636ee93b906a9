# ==============================================================================
# SERVICIO DE VENTAS
# ==============================================================================
# Registra ventas descontando el stock de la sucursal.
#
# FLUJO DE UNA VENTA:
# 1. Validar el formulario contra el último estado conocido (LiveState):
#    sucursal, producto en esa sucursal, cantidad, precio, stock suficiente.
#    Si algo falla NO se escribe nada.
# 2. Calcular monto neto (precio * cantidad - descuento) y costo
#    (costo del producto * cantidad).
# 3. Un único lote atómico: alta de la venta + descuento condicional del
#    stock de la sucursal. El descuento se vuelve a verificar dentro del
#    almacén, así una venta validada contra stock desactualizado falla con
#    "stock insuficiente" en vez de dejar stock negativo.
# 4. Éxito → el formulario se limpia. Fallo del almacén → mensaje genérico,
#    el formulario se conserva y no se reintenta automáticamente.
# ==============================================================================

from datetime import datetime
from typing import Any, Dict, List, Optional

from app_ventas.exceptions import InsufficientStockError, StoreError, ValidationError
from app_ventas.models import Sale, parse_input_date, to_number
from app_ventas.performance_logger import log_event, profile_function
from app_ventas.repositories.branch_stock_repository import BranchStockRepository
from app_ventas.repositories.sales_repository import SalesRepository
from app_ventas.services.branch_service import join_branch_stock, parse_quantity
from app_ventas.services.live_state import LiveState
from app_ventas.services.results import store_failure, validation_failure


class SalesService:
    """
    Servicio para registro y consulta de ventas.

    Las ventas son inmutables: no hay edición ni anulación.
    """

    def __init__(self, sales_repo: SalesRepository, branch_stock_repo: BranchStockRepository):
        """
        Args:
            sales_repo: Repositorio de ventas
            branch_stock_repo: Repositorio de stock por sucursal
        """
        self.sales_repo = sales_repo
        self.branch_stock_repo = branch_stock_repo

    # =========================================================================
    # VALIDACIÓN
    # =========================================================================

    @staticmethod
    def product_in_branch(live_state: LiveState, branch_id: str, product_id: str) -> Optional[Dict[str, Any]]:
        """Producto maestro unido a su registro de stock en la sucursal, o None."""
        joined = join_branch_stock(live_state.branch_entries(branch_id), live_state.inventory)
        return next(
            (p for p in joined if p.get('productId') == product_id and not p['orphaned']),
            None,
        )

    def validate_sale(self, uid: str, form: Dict[str, Any], live_state: LiveState) -> Sale:
        """
        Valida el formulario y construye la venta (sin ID todavía).

        Raises:
            ValidationError: con ``field`` = branchId, productId, quantity,
                             unitPrice o date
            InsufficientStockError: cantidad mayor al stock de la sucursal
        """
        branch_id = form.get('branchId') or ''
        product_id = form.get('productId') or ''

        branch = live_state.find_branch(branch_id)
        if branch is None:
            raise ValidationError('Seleccione una sucursal', field='branchId')

        product = self.product_in_branch(live_state, branch_id, product_id)
        if product is None:
            raise ValidationError('Seleccione un producto disponible en la sucursal', field='productId')

        quantity = parse_quantity(form.get('quantity'))

        unit_price = to_number(form.get('unitPrice'))
        if unit_price is None:
            raise ValidationError('El precio de venta es obligatorio', field='unitPrice')
        if unit_price < 0:
            raise ValidationError('El precio de venta no puede ser negativo', field='unitPrice')

        available = to_number(product.get('stock')) or 0
        if quantity > available:
            raise InsufficientStockError(
                available=int(available) if float(available).is_integer() else available,
                requested=quantity,
                message=f'Stock insuficiente: solo quedan {available:g} unidades en esta sucursal',
            )

        try:
            sale_date = parse_input_date(form.get('date'))
        except ValueError:
            raise ValidationError('Fecha inválida, use AAAA-MM-DD', field='date')

        return Sale.build(
            product_name=product.get('name', ''),
            product_id=product_id,
            product_cost=to_number(product.get('cost')) or 0.0,
            branch_id=branch_id,
            branch_name=branch.get('name', ''),
            quantity=quantity,
            unit_price=unit_price,
            discount=to_number(form.get('discount')) or 0.0,
            sale_date=sale_date or datetime.now(),
            user_id=uid,
        )

    # =========================================================================
    # REGISTRO
    # =========================================================================

    @profile_function(name='Registrar venta')
    def record_sale(self, uid: str, form: Dict[str, Any], live_state: LiveState) -> Dict[str, Any]:
        """
        Registra una venta y descuenta el stock de la sucursal en un solo lote.

        Args:
            uid: Usuario dueño de los datos
            form: branchId, productId, quantity, unitPrice, discount, date
            live_state: Último estado conocido de las colecciones del usuario

        Returns:
            {'ok': True, 'sale', 'stock', 'clear_form': True} o
            {'ok': False, 'error', 'field', 'code', 'clear_form': False}
        """
        try:
            sale = self.validate_sale(uid, form, live_state)
        except ValidationError as exc:
            return validation_failure(exc, clear_form=False)

        entry = self.product_in_branch(live_state, sale.branch_id, sale.product_id)
        try:
            batch = self.sales_repo.store.batch(uid)
            sale_id = self.sales_repo.add_to_batch(batch, sale.to_dict())
            self.branch_stock_repo.decrement_in_batch(batch, entry['branchInventoryId'], sale.quantity)
            batch.commit()
            remaining = self.branch_stock_repo.get(uid, entry['branchInventoryId']) or {}
        except InsufficientStockError as exc:
            # Otra venta consumió el stock después de la validación
            return validation_failure(exc, clear_form=False)
        except StoreError as exc:
            return store_failure('Registrar venta', exc, uid, 'No se pudo registrar la venta', clear_form=False)

        record = sale.to_dict()
        record['id'] = sale_id
        log_event('Venta registrada', uid, {
            'id': sale_id,
            'sucursal': sale.branch_name,
            'producto': sale.product,
            'cantidad': sale.quantity,
            'monto': sale.amount,
            'ganancia': sale.profit,
        })
        return {
            'ok': True,
            'sale': record,
            'stock': remaining.get('stock', 0),
            'clear_form': True,
        }

    # =========================================================================
    # CONSULTAS
    # =========================================================================

    def list_sales(self, uid: str) -> List[Dict[str, Any]]:
        """Todas las ventas, más recientes primero."""
        return self.sales_repo.list_sales(uid)

    def sale_preview(self, form: Dict[str, Any], live_state: LiveState) -> Dict[str, Any]:
        """
        Totales que se muestran antes de confirmar la venta.

        Returns:
            {'total', 'net', 'cost', 'available'}; datos incompletos cuentan como 0
        """
        quantity = to_number(form.get('quantity')) or 0
        unit_price = to_number(form.get('unitPrice')) or 0
        discount = max(0.0, to_number(form.get('discount')) or 0)
        total = unit_price * quantity

        product = self.product_in_branch(live_state, form.get('branchId') or '', form.get('productId') or '')
        cost = (to_number(product.get('cost')) or 0) * quantity if product else 0
        return {
            'total': round(total, 2),
            'net': round(total - discount, 2),
            'cost': round(cost, 2),
            'available': product.get('stock') if product else None,
        }
