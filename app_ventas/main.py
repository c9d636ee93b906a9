# ==============================================================================
# APLICACIÓN WEB - Endpoints JSON de las tres pestañas
# ==============================================================================
#   Ventas      → /api/sales
#   Inventario  → /api/inventory
#   Sucursales  → /api/branches
#
# Cada visitante obtiene un uid anónimo en GET /api/session (cookie de
# sesión firmada) junto con su token CSRF. Sin uid todas las rutas de datos
# responden 401.
#
# Códigos de respuesta:
#   400 → validación (nada se escribió)      {'ok': False, 'error', 'field'}
#   401 → sin sesión
#   403 → token CSRF inválido
#   404 → sucursal / producto inexistente
#   503 → fallo del almacén (mensaje genérico, detalle en errors.log)
# ==============================================================================

import os
import uuid
from functools import wraps

from flask import Blueprint, Flask, current_app, request, session
from werkzeug.exceptions import NotFound, RequestEntityTooLarge
from werkzeug.utils import secure_filename

from app_ventas import config
from app_ventas.app_container import AppContainer
from app_ventas.exceptions import StoreError, ValidationError
from app_ventas.performance_logger import configure as configure_logs
from app_ventas.performance_logger import init_profiling, log_error
from app_ventas.services import (
    available_years,
    filter_sales,
    inventory_stats,
    month_options,
    sales_stats,
)
from app_ventas.services.results import NOT_FOUND, STORE_ERROR

api = Blueprint('api', __name__, url_prefix='/api')

_STATUS_BY_CODE = {
    NOT_FOUND: 404,
    STORE_ERROR: 503,
}


# ═══════════════════════════════════════════════════════════════════════════════
# HELPERS
# ═══════════════════════════════════════════════════════════════════════════════

def get_container() -> AppContainer:
    return current_app.extensions['app_ventas']


def current_uid():
    return session.get('uid')


def _payload():
    """Datos del formulario: JSON o form-urlencoded."""
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form.to_dict()


def _respond(result, success_status=200):
    """Traduce el resultado de un servicio a (cuerpo, status)."""
    if result.get('ok'):
        return result, success_status
    return result, _STATUS_BY_CODE.get(result.get('code'), 400)


def _store_unavailable(context, exc, uid):
    log_error(context, exc, uid)
    return {'ok': False, 'error': 'No se pudieron leer los datos, intente de nuevo', 'code': STORE_ERROR}, 503


def _live_state_or_error(context):
    """
    Estado en vivo del usuario actual.

    Returns:
        Tupla (live_state, None) o (None, respuesta_503)
    """
    uid = current_uid()
    live = get_container().live_state(uid)
    if live.error is not None:
        failure = _store_unavailable(context, live.error, uid)
        # Se descarta para reintentar la lectura en la próxima petición
        get_container().close_live_state(uid)
        return None, failure
    return live, None


# ═══════════════════════════════════════════════════════════════════════════════
# DECORADORES DE SEGURIDAD
# ═══════════════════════════════════════════════════════════════════════════════

def auth_required(f):
    @wraps(f)
    def wrapper(*args, **kwargs):
        if not current_uid():
            return {'ok': False, 'error': 'Sesión no iniciada'}, 401
        return f(*args, **kwargs)
    return wrapper


def generate_csrf_token():
    if 'csrf_token' not in session:
        session['csrf_token'] = uuid.uuid4().hex
    return session['csrf_token']


def verify_csrf(f):
    @wraps(f)
    def wrapper(*args, **kwargs):
        if request.method == 'POST':
            token = session.get('csrf_token')
            form_token = (
                request.headers.get('X-CSRF-Token') or
                request.headers.get('X-CSRFToken') or
                request.form.get('csrf_token')
            )
            if not form_token and request.is_json:
                json_data = request.get_json(silent=True)
                if isinstance(json_data, dict):
                    form_token = json_data.get('csrf_token')

            if not token or not form_token or token != form_token:
                return {'ok': False, 'error': 'CSRF token inválido'}, 403
        return f(*args, **kwargs)
    return wrapper


def set_security_headers(response):
    response.headers['X-Frame-Options'] = 'DENY'
    response.headers['X-Content-Type-Options'] = 'nosniff'
    response.headers['Referrer-Policy'] = 'no-referrer-when-downgrade'
    response.headers['Permissions-Policy'] = 'geolocation=(), microphone=()'
    if request.is_secure:
        response.headers['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains'
    return response


# ═══════════════════════════════════════════════════════════════════════════════
# SESIÓN
# ═══════════════════════════════════════════════════════════════════════════════

@api.route('/session', methods=['GET'])
def api_session():
    """Inicia (o reanuda) la sesión anónima. Devuelve uid y token CSRF."""
    auth = get_container().auth_service
    uid = current_uid()
    if not auth.is_known(uid):
        uid = auth.sign_in_anonymously()
        if uid is None:
            session.pop('uid', None)
            return {'ok': False, 'error': 'No se pudo iniciar sesión'}, 401
        session['uid'] = uid
        session.permanent = True
    return {'ok': True, 'uid': uid, 'csrf_token': generate_csrf_token()}


# ═══════════════════════════════════════════════════════════════════════════════
# VENTAS
# ═══════════════════════════════════════════════════════════════════════════════

@api.route('/sales', methods=['GET'])
@auth_required
def api_sales():
    """Ventas filtradas por ?year=&month= con sus totales."""
    live, failure = _live_state_or_error('Ver ventas')
    if failure:
        return failure

    year = request.args.get('year', 'all')
    month = request.args.get('month', 'all')
    try:
        filtered = filter_sales(live.sales, year, month)
    except ValidationError as exc:
        return {'ok': False, 'error': exc.message, 'field': exc.field}, 400

    return {
        'ok': True,
        'sales': filtered,
        'stats': sales_stats(filtered),
        'all_sales': live.sales,
        'years': available_years(live.sales),
        'months': month_options(),
        'filter': {'year': year, 'month': month if year != 'all' else 'all'},
    }


@api.route('/sales', methods=['POST'])
@auth_required
@verify_csrf
def api_record_sale():
    live, failure = _live_state_or_error('Registrar venta')
    if failure:
        return failure
    result = get_container().sales_service.record_sale(current_uid(), _payload(), live)
    return _respond(result, 201)


@api.route('/sales/preview', methods=['POST'])
@auth_required
@verify_csrf
def api_sale_preview():
    live, failure = _live_state_or_error('Previsualizar venta')
    if failure:
        return failure
    preview = get_container().sales_service.sale_preview(_payload(), live)
    preview['ok'] = True
    return preview


# ═══════════════════════════════════════════════════════════════════════════════
# INVENTARIO
# ═══════════════════════════════════════════════════════════════════════════════

@api.route('/inventory', methods=['GET'])
@auth_required
def api_inventory():
    """Catálogo con color de stock y resumen. ?q= filtra por nombre/SKU/código/marca."""
    live, failure = _live_state_or_error('Ver inventario')
    if failure:
        return failure

    inventory_service = get_container().inventory_service
    products = inventory_service.search(live.inventory, request.args.get('q', ''))

    return {
        'ok': True,
        'products': products,
        'stats': inventory_stats(live.inventory, inventory_service.low_stock_threshold),
    }


@api.route('/inventory', methods=['POST'])
@auth_required
@verify_csrf
def api_add_product():
    result = get_container().inventory_service.add_product(current_uid(), _payload())
    return _respond(result, 201)


@api.route('/inventory/import', methods=['POST'])
@auth_required
@verify_csrf
def api_import_csv():
    """Carga masiva: archivo multipart 'file' o texto CSV en el cuerpo."""
    upload = request.files.get('file')
    source = None
    if upload is not None:
        source = secure_filename(upload.filename or '') or None
        try:
            text = upload.read().decode('utf-8-sig')
        except UnicodeDecodeError:
            return {'ok': False, 'error': 'El archivo debe estar en UTF-8', 'field': 'file', 'errors': []}, 400
    else:
        text = request.get_data(as_text=True)

    result = get_container().import_service.import_csv(current_uid(), text, source)
    return _respond(result, 201)


@api.route('/inventory/<product_id>', methods=['POST'])
@auth_required
@verify_csrf
def api_edit_product(product_id):
    result = get_container().inventory_service.edit_product(current_uid(), product_id, _payload())
    return _respond(result)


@api.route('/inventory/<product_id>/delete', methods=['POST'])
@auth_required
@verify_csrf
def api_delete_product(product_id):
    result = get_container().inventory_service.delete_product(current_uid(), product_id)
    return _respond(result)


# ═══════════════════════════════════════════════════════════════════════════════
# SUCURSALES
# ═══════════════════════════════════════════════════════════════════════════════

@api.route('/branches', methods=['GET'])
@auth_required
def api_branches():
    live, failure = _live_state_or_error('Ver sucursales')
    if failure:
        return failure
    branches = sorted(live.branches, key=lambda b: str(b.get('name', '')).lower())
    return {'ok': True, 'branches': branches}


@api.route('/branches', methods=['POST'])
@auth_required
@verify_csrf
def api_add_branch():
    result = get_container().branch_service.add_branch(current_uid(), _payload().get('name'))
    return _respond(result, 201)


@api.route('/branches/<branch_id>', methods=['GET'])
@auth_required
def api_branch_overview(branch_id):
    result = get_container().branch_service.branch_overview(current_uid(), branch_id)
    return _respond(result)


@api.route('/branches/<branch_id>', methods=['POST'])
@auth_required
@verify_csrf
def api_rename_branch(branch_id):
    result = get_container().branch_service.rename_branch(current_uid(), branch_id, _payload().get('name'))
    return _respond(result)


@api.route('/branches/<branch_id>/distribute', methods=['POST'])
@auth_required
@verify_csrf
def api_distribute(branch_id):
    data = _payload()
    result = get_container().branch_service.distribute(
        current_uid(), branch_id, data.get('productId'), data.get('quantity'),
    )
    return _respond(result)


@api.route('/branches/<branch_id>/products', methods=['GET'])
@auth_required
def api_branch_products(branch_id):
    """Productos con stock en la sucursal (opciones del formulario de venta)."""
    uid = current_uid()
    branch_service = get_container().branch_service
    try:
        if branch_service.branch_repo.get_branch(uid, branch_id) is None:
            return {'ok': False, 'error': 'Sucursal no encontrada', 'field': 'branchId'}, 404
        products = branch_service.available_products(uid, branch_id)
    except StoreError as exc:
        return _store_unavailable('Productos para venta', exc, uid)
    return {'ok': True, 'products': products}


# ═══════════════════════════════════════════════════════════════════════════════
# FÁBRICA DE LA APLICACIÓN
# ═══════════════════════════════════════════════════════════════════════════════

def create_app(data_dir=None, logs_dir=None, testing=False):
    """
    Crea la app Flask con su propio contenedor de dependencias.

    Args:
        data_dir: Carpeta de datos (por defecto config.DATA_DIR)
        logs_dir: Carpeta de logs (por defecto config.LOGS_DIR)
        testing: Activa el modo TESTING de Flask
    """
    app = Flask(__name__)

    if config.PRODUCTION_MODE and not config.SECRET_KEY:
        print("[ADVERTENCIA] APP_VENTAS_PRODUCTION activo sin APP_VENTAS_SECRET_KEY definida")
        print("[ADVERTENCIA] Define la variable de entorno para mayor seguridad")
    app.secret_key = config.SECRET_KEY or config.DEFAULT_SECRET

    app.config.update(
        TESTING=testing,
        SESSION_COOKIE_HTTPONLY=True,
        SESSION_COOKIE_SECURE=False,       # True solo detrás de HTTPS
        SESSION_COOKIE_SAMESITE='Lax',
        PERMANENT_SESSION_LIFETIME=config.SESSION_LIFETIME_SECONDS,
        MAX_CONTENT_LENGTH=config.MAX_CONTENT_LENGTH,
    )
    app.json.ensure_ascii = False

    configure_logs(logs_dir=logs_dir or config.LOGS_DIR)
    app.extensions['app_ventas'] = AppContainer(data_dir or config.DATA_DIR)

    app.register_blueprint(api)
    init_profiling(app)
    app.after_request(set_security_headers)

    @app.errorhandler(RequestEntityTooLarge)
    def _too_large(_error):
        return {'ok': False, 'error': 'El archivo supera el tamaño máximo permitido', 'field': 'file'}, 413

    @app.errorhandler(NotFound)
    def _not_found(_error):
        return {'ok': False, 'error': 'Recurso no encontrado'}, 404

    return app


app = create_app()


if __name__ == "__main__":
    # Desarrollo local; en producción usar WSGI (gunicorn wsgi:app)
    DEBUG = os.environ.get('FLASK_DEBUG', '0') == '1'
    HOST = os.environ.get('FLASK_HOST', '0.0.0.0')
    PORT = int(os.environ.get('FLASK_PORT', 5000))

    if not DEBUG:
        print(f"\n{'='*50}")
        print(f"  Servidor iniciado en http://{HOST}:{PORT}")
        print(f"{'='*50}\n")

    app.run(host=HOST, port=PORT, debug=DEBUG)
