# ==============================================================================
# REPOSITORIO DE STOCK POR SUCURSAL
# ==============================================================================
# Colección 'branchInventory' del usuario. Documento: {branchId, productId, stock}
#
# A lo sumo un registro por par (sucursal, producto). El alta y el
# incremento se hacen con una sola operación condicional del almacén
# (increment_or_create), así dos distribuciones simultáneas al mismo par
# nunca crean registros duplicados.
# ==============================================================================

from typing import Any, Dict, List, Optional, Tuple

from app_ventas.repositories.base import CollectionRepository, WriteBatch


class BranchStockRepository(CollectionRepository):
    """Libro de stock asignado a cada sucursal."""

    collection = 'branchInventory'

    def list_entries(self, uid: str, branch_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """Registros de stock, opcionalmente de una sola sucursal."""
        if branch_id is None:
            return self.list_all(uid)
        return self.store.query(uid, self.collection, branchId=branch_id)

    def add_stock(self, uid: str, branch_id: str, product_id: str, quantity: int) -> Tuple[str, int, bool]:
        """
        Suma unidades al par (sucursal, producto), creando el registro si falta.

        Returns:
            Tupla (entry_id, stock_resultante, creado)
        """
        return self.store.increment_or_create(
            uid,
            self.collection,
            {'branchId': branch_id, 'productId': product_id},
            'stock',
            quantity,
        )

    def decrement_in_batch(self, batch: WriteBatch, entry_id: str, quantity: int) -> None:
        """Descuento condicional: el commit falla si el stock quedaría negativo."""
        batch.decrement(self.collection, entry_id, 'stock', quantity, minimum=0)
