# ==============================================================================
# CONFIGURACIÓN DE LA APLICACIÓN
# ==============================================================================
# Valores leídos desde variables de entorno con valores por defecto para
# desarrollo local. Todo lo que antes eran constantes sueltas en main.py
# vive aquí para que servicios, repositorios y tests usen la misma fuente.
#
# VARIABLES DE ENTORNO:
#   APP_VENTAS_DATA_DIR     → carpeta de datos (un JSON por usuario)
#   APP_VENTAS_LOGS_DIR     → carpeta de logs legibles
#   APP_VENTAS_SECRET_KEY   → clave de sesión Flask (OBLIGATORIA en producción)
#   APP_VENTAS_PRODUCTION   → "1" activa modo producción
#   APP_VENTAS_PROFILING    → "0" desactiva el profiling de rutas
# ==============================================================================

import os


def _env_flag(name, default):
    """Interpreta una variable de entorno como booleano ("1", "true", "si")."""
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'si', 'sí', 'on')


BASE_DIR = os.path.dirname(os.path.abspath(__file__))

# ═══════════════════════════════════════════════════════════════════════════
# RUTAS DE DATOS Y LOGS
# ═══════════════════════════════════════════════════════════════════════════
DATA_DIR = os.environ.get('APP_VENTAS_DATA_DIR') or os.path.join(BASE_DIR, 'data')
LOGS_DIR = os.environ.get('APP_VENTAS_LOGS_DIR') or os.path.join(BASE_DIR, 'logs')

# ═══════════════════════════════════════════════════════════════════════════
# MODO PRODUCCIÓN Y SESIONES
# ═══════════════════════════════════════════════════════════════════════════
PRODUCTION_MODE = _env_flag('APP_VENTAS_PRODUCTION', False)

DEFAULT_SECRET = 'app_ventas_dev_secret_key_change_in_production'
SECRET_KEY = os.environ.get('APP_VENTAS_SECRET_KEY')

SESSION_LIFETIME_SECONDS = 30 * 86400  # El uid anónimo vive 30 días en la cookie

# Tamaño máximo de un CSV de carga masiva
MAX_CONTENT_LENGTH = 2 * 1024 * 1024  # 2 MB

# ═══════════════════════════════════════════════════════════════════════════
# REGLAS DE NEGOCIO
# ═══════════════════════════════════════════════════════════════════════════
LOW_STOCK_THRESHOLD = 5       # Rojo en el listado y cuenta como "por agotarse"
WARNING_STOCK_THRESHOLD = 10  # Amarillo en el listado

# Cabeceras obligatorias del CSV de inventario (en este orden en la plantilla)
CSV_REQUIRED_HEADERS = (
    'date', 'sku', 'barcode', 'brand', 'name', 'stock', 'cost', 'shippingCost',
)

# Nombres de las colecciones persistidas por usuario
COLLECTIONS = ('sales', 'inventory', 'branches', 'branchInventory')

# ═══════════════════════════════════════════════════════════════════════════
# PROFILING
# ═══════════════════════════════════════════════════════════════════════════
ENABLE_PROFILING = _env_flag('APP_VENTAS_PROFILING', True)
THRESHOLD_WARNING_MS = 300   # Advertencia si supera 300ms
THRESHOLD_CRITICAL_MS = 700  # Crítico si supera 700ms

# ═══════════════════════════════════════════════════════════════════════════
# MEMORIA POR USUARIO
# ═══════════════════════════════════════════════════════════════════════════
STORE_CACHE_SIZE = 256  # Usuarios con datos en la caché del almacén
MAX_LIVE_STATES = 128   # Usuarios con estado en vivo (suscripciones abiertas)
