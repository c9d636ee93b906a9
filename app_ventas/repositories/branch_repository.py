# ==============================================================================
# REPOSITORIO DE SUCURSALES
# ==============================================================================
# Colección 'branches' del usuario. Documento: {name}
# Las sucursales se crean y renombran; no se eliminan.
# ==============================================================================

from typing import Any, Dict, List, Optional

from app_ventas.repositories.base import CollectionRepository


class BranchRepository(CollectionRepository):
    """Repositorio de sucursales / puntos de venta."""

    collection = 'branches'

    def list_branches(self, uid: str) -> List[Dict[str, Any]]:
        """Sucursales ordenadas por nombre."""
        return sorted(self.list_all(uid), key=lambda b: str(b.get('name', '')).lower())

    def get_branch(self, uid: str, branch_id: str) -> Optional[Dict[str, Any]]:
        return self.get(uid, branch_id)

    def create_branch(self, uid: str, name: str) -> str:
        return self.store.add(uid, self.collection, {'name': name})

    def rename_branch(self, uid: str, branch_id: str, name: str) -> bool:
        """
        Cambia el nombre de una sucursal.

        Las ventas ya registradas conservan el nombre anterior (es una copia
        tomada al vender).

        Returns:
            True si se renombró, False si no existe
        """
        if self.get(uid, branch_id) is None:
            return False
        self.store.update(uid, self.collection, branch_id, {'name': name})
        return True
