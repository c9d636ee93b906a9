# ==============================================================================
# REPOSITORIO DE VENTAS
# ==============================================================================
# Colección 'sales' del usuario. Libro de solo-agregar: no existen métodos
# para modificar ni eliminar ventas.
# ==============================================================================

from typing import Any, Dict, List, Optional

from app_ventas.repositories.base import CollectionRepository, WriteBatch


class SalesRepository(CollectionRepository):
    """
    Repositorio de ventas.

    Formato de cada documento:
    {
        "product": "Café 250g",
        "productId": "...",
        "productCost": 60,
        "branchId": "...",
        "branchName": "Tienda Centro",
        "salesChannel": "Tienda Centro",
        "quantity": 3,
        "unitPrice": 100,
        "discount": 10,
        "amount": 290,
        "cost": 180,
        "date": "2024-05-10T00:00:00",
        "userId": "..."
    }
    """

    collection = 'sales'

    def list_sales(self, uid: str) -> List[Dict[str, Any]]:
        """Ventas ordenadas por fecha, más reciente primero."""
        return self.sort_by_date(self.list_all(uid))

    def get_sale(self, uid: str, sale_id: str) -> Optional[Dict[str, Any]]:
        return self.get(uid, sale_id)

    def list_for_branch(self, uid: str, branch_id: str) -> List[Dict[str, Any]]:
        return self.sort_by_date(self.store.query(uid, self.collection, branchId=branch_id))

    def add_to_batch(self, batch: WriteBatch, sale_data: Dict[str, Any]) -> str:
        """Agrega la venta a un lote (junto con el descuento de stock)."""
        return batch.add(self.collection, sale_data)
