# ==============================================================================
# CAPA DE SERVICIOS - Lógica de negocio
# ==============================================================================
# PRINCIPIOS:
# 1. Los servicios orquestan operaciones entre repositorios
# 2. Aplican reglas de negocio y validaciones
# 3. Las rutas (controllers) solo llaman a servicios
# 4. Devuelven dicts {'ok': bool, ...}; nunca dejan escapar errores del almacén
#
# ESTRUCTURA:
# ├── auth_service.py      → Inicio de sesión anónimo
# ├── live_state.py        → Último estado conocido de las colecciones
# ├── inventory_service.py → Catálogo de productos
# ├── import_service.py    → Importación CSV (todo o nada)
# ├── branch_service.py    → Sucursales y distribución de stock
# ├── sales_service.py     → Registro de ventas
# ├── stats_service.py     → Totales y filtro por período
# └── results.py           → Formato de resultados de error
# ==============================================================================

from app_ventas.services.auth_service import AuthService
from app_ventas.services.live_state import LiveState
from app_ventas.services.inventory_service import InventoryService, build_product
from app_ventas.services.import_service import ImportService, parse_csv
from app_ventas.services.branch_service import BranchService, join_branch_stock, parse_quantity
from app_ventas.services.sales_service import SalesService
from app_ventas.services.stats_service import (
    available_years,
    filter_sales,
    inventory_stats,
    month_options,
    parse_period,
    sales_stats,
)

__all__ = [
    'AuthService',
    'LiveState',
    'InventoryService',
    'build_product',
    'ImportService',
    'parse_csv',
    'BranchService',
    'join_branch_stock',
    'parse_quantity',
    'SalesService',
    'available_years',
    'filter_sales',
    'inventory_stats',
    'month_options',
    'parse_period',
    'sales_stats',
]
