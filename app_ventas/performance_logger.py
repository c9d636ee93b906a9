# ==============================================================================
# LOGS LEGIBLES Y PROFILING
# ==============================================================================
# Todo queda en archivos de texto dentro de config.LOGS_DIR (o el directorio
# pasado a configure()):
#
#   performance.log     → una entrada por petición HTTP
#   slow_routes.log     → peticiones por encima de los umbrales
#   slow_functions.log  → llamadas lentas a funciones decoradas
#   errors.log          → fallos del almacén, del inicio de sesión, etc.
#   activity.log        → escrituras del negocio (ventas, distribución, ...)
#
# Umbrales: config.THRESHOLD_WARNING_MS / config.THRESHOLD_CRITICAL_MS
# Desactivar el profiling: APP_VENTAS_PROFILING=0 (errores y actividad se
# registran siempre).
# ==============================================================================

import os
import threading
import time
import traceback
from datetime import datetime
from functools import wraps

from flask import g, request, session

from app_ventas import config

ENABLE_PROFILING = config.ENABLE_PROFILING
THRESHOLD_WARNING = config.THRESHOLD_WARNING_MS
THRESHOLD_CRITICAL = config.THRESHOLD_CRITICAL_MS

PERFORMANCE_LOG = 'performance.log'
SLOW_ROUTES_LOG = 'slow_routes.log'
SLOW_FUNCTIONS_LOG = 'slow_functions.log'
ERRORS_LOG = 'errors.log'
ACTIVITY_LOG = 'activity.log'
LOG_FILES = (PERFORMANCE_LOG, SLOW_ROUTES_LOG, SLOW_FUNCTIONS_LOG, ERRORS_LOG, ACTIVITY_LOG)

# "MÉTODO regla" → nombre que aparece en los logs
ROUTE_NAMES = {
    'GET /api/session': 'Iniciar sesión anónima',

    'GET /api/sales': 'Ver ventas',
    'POST /api/sales': 'Registrar venta',
    'POST /api/sales/preview': 'Previsualizar venta',

    'GET /api/inventory': 'Ver inventario',
    'POST /api/inventory': 'Agregar producto',
    'POST /api/inventory/<product_id>': 'Editar producto',
    'POST /api/inventory/<product_id>/delete': 'Eliminar producto',
    'POST /api/inventory/import': 'Carga masiva CSV',

    'GET /api/branches': 'Ver sucursales',
    'POST /api/branches': 'Agregar sucursal',
    'GET /api/branches/<branch_id>': 'Ver sucursal',
    'POST /api/branches/<branch_id>': 'Renombrar sucursal',
    'POST /api/branches/<branch_id>/distribute': 'Distribuir stock',
    'GET /api/branches/<branch_id>/products': 'Productos para venta',
}

_SEPARATOR = '─' * 40

_logs_dir = config.LOGS_DIR
_file_lock = threading.Lock()

# nombre → [llamadas, ms acumulados, ms máximo]
_calls = {}
_calls_lock = threading.Lock()


def configure(logs_dir=None, enabled=None):
    """Cambia la carpeta de logs y/o enciende o apaga el profiling."""
    global _logs_dir, ENABLE_PROFILING
    if logs_dir:
        _logs_dir = logs_dir
    if enabled is not None:
        ENABLE_PROFILING = enabled


# ═══════════════════════════════════════════════════════════════════════════
# ESCRITURA
# ═══════════════════════════════════════════════════════════════════════════

def _now():
    return datetime.now().strftime('%Y-%m-%d %H:%M:%S')


def _append(filename, text):
    try:
        with _file_lock:
            os.makedirs(_logs_dir, exist_ok=True)
            with open(os.path.join(_logs_dir, filename), 'a', encoding='utf-8') as f:
                f.write(text)
    except OSError:
        pass  # Sin disco para logs la app sigue funcionando


def _block(tag, *fields):
    """Entrada de varias líneas: encabezado [tag] fecha y pares 'Etiqueta: valor'."""
    body = '\n'.join(f'{label}: {value}' for label, value in fields)
    return f'\n[{tag}] {_now()}\n{_SEPARATOR}\n{body}\n{_SEPARATOR}\n'


def _severity(elapsed_ms):
    """None, 'WARNING' o 'CRITICAL' según los umbrales."""
    if elapsed_ms >= THRESHOLD_CRITICAL:
        return 'CRITICAL'
    if elapsed_ms >= THRESHOLD_WARNING:
        return 'WARNING'
    return None


def route_name(method, rule):
    return ROUTE_NAMES.get(f'{method} {rule}', f'{method} {rule}')


# ═══════════════════════════════════════════════════════════════════════════
# RUTAS
# ═══════════════════════════════════════════════════════════════════════════

def log_request(method, path, rule, elapsed_ms, user=None):
    """
    Deja la petición en performance.log y, si fue lenta, en slow_routes.log.

    Args:
        method: Método HTTP
        path: Ruta pedida (/api/branches/abc)
        rule: Regla de Flask (/api/branches/<branch_id>)
        elapsed_ms: Duración en milisegundos
        user: uid de la sesión, si hay
    """
    if not ENABLE_PROFILING:
        return

    fields = (
        ('Acción', route_name(method, rule)),
        ('Usuario', user or 'anónimo'),
        ('Ruta', f'{method} {path}'),
        ('Tiempo', f'{elapsed_ms:.0f} ms'),
    )
    _append(PERFORMANCE_LOG, _block('PERFORMANCE', *fields))

    level = _severity(elapsed_ms)
    if level:
        limit = THRESHOLD_CRITICAL if level == 'CRITICAL' else THRESHOLD_WARNING
        _append(SLOW_ROUTES_LOG, _block(level, *fields, ('Umbral', f'{limit} ms')))


def init_profiling(app):
    """Mide cada petición de la app con hooks before/after_request."""
    if not ENABLE_PROFILING:
        return

    @app.before_request
    def _start_clock():
        g.request_started = time.perf_counter()

    @app.after_request
    def _stop_clock(response):
        started = g.pop('request_started', None)
        if started is not None:
            rule = request.url_rule.rule if request.url_rule else request.path
            log_request(
                request.method,
                request.path,
                rule,
                (time.perf_counter() - started) * 1000,
                session.get('uid'),
            )
        return response


# ═══════════════════════════════════════════════════════════════════════════
# FUNCIONES
# ═══════════════════════════════════════════════════════════════════════════

def _record_call(label, elapsed_ms):
    with _calls_lock:
        entry = _calls.setdefault(label, [0, 0.0, 0.0])
        entry[0] += 1
        entry[1] += elapsed_ms
        entry[2] = max(entry[2], elapsed_ms)

    level = _severity(elapsed_ms)
    if level:
        _append(SLOW_FUNCTIONS_LOG, _block(level, ('Función', label), ('Tiempo', f'{elapsed_ms:.0f} ms')))


def profile_function(func=None, name=None):
    """
    Cuenta llamadas y tiempos de una función; las llamadas lentas van a
    slow_functions.log.

    Uso:
        @profile_function
        def importar(): ...

        @profile_function(name='Registrar venta')
        def record_sale(self, ...): ...
    """
    def decorator(fn):
        label = name or fn.__name__

        @wraps(fn)
        def wrapper(*args, **kwargs):
            if not ENABLE_PROFILING:
                return fn(*args, **kwargs)
            started = time.perf_counter()
            try:
                return fn(*args, **kwargs)
            finally:
                _record_call(label, (time.perf_counter() - started) * 1000)

        return wrapper

    if func is not None:
        return decorator(func)
    return decorator


def get_function_stats():
    """
    Returns:
        {nombre: {'calls', 'avg_time', 'max_time'}} con tiempos en ms
    """
    with _calls_lock:
        return {
            label: {
                'calls': calls,
                'avg_time': round(total / calls, 2) if calls else 0,
                'max_time': round(peak, 2),
            }
            for label, (calls, total, peak) in _calls.items()
        }


def reset_stats():
    with _calls_lock:
        _calls.clear()


# ═══════════════════════════════════════════════════════════════════════════
# ERRORES Y ACTIVIDAD
# ═══════════════════════════════════════════════════════════════════════════

def log_error(context, exc=None, user=None):
    """
    Guarda un error capturado (con traceback) en errors.log.

    Args:
        context: Operación en curso ("Registrar venta")
        exc: Excepción capturada
        user: uid afectado
    """
    fields = [('Contexto', context), ('Usuario', user or 'anónimo')]
    if exc is not None:
        fields.append(('Error', repr(exc)))
        trace = ''.join(traceback.format_exception(type(exc), exc, exc.__traceback__)).rstrip()
        fields.append(('Traceback', '\n' + trace))
    _append(ERRORS_LOG, _block('ERROR', *fields))


def log_event(action, user=None, details=None):
    """Una línea en activity.log por cada escritura, con sus datos indentados."""
    extra = ''.join(f'\n  {key}: {value}' for key, value in (details or {}).items())
    _append(ACTIVITY_LOG, f"[{_now()}] {action} | usuario={user or 'anónimo'}{extra}\n")


# ═══════════════════════════════════════════════════════════════════════════
# MANTENIMIENTO
# ═══════════════════════════════════════════════════════════════════════════

def clear_logs():
    for filename in LOG_FILES:
        path = os.path.join(_logs_dir, filename)
        if os.path.exists(path):
            os.remove(path)


def get_log_summary():
    """
    Returns:
        {nombre_sin_extension: {'exists', 'size_kb', 'lines'}}
    """
    summary = {}
    for filename in LOG_FILES:
        path = os.path.join(_logs_dir, filename)
        key = os.path.splitext(filename)[0]
        if not os.path.exists(path):
            summary[key] = {'exists': False, 'size_kb': 0, 'lines': 0}
            continue
        with open(path, 'r', encoding='utf-8') as f:
            lines = sum(1 for _ in f)
        summary[key] = {
            'exists': True,
            'size_kb': round(os.path.getsize(path) / 1024, 2),
            'lines': lines,
        }
    return summary
