"""
Small dashboard over the consolidated store, meant to be served on loopback only
"""

from __future__ import annotations

from flask import Blueprint, Flask, abort, current_app, g, jsonify, render_template, request
from werkzeug.exceptions import HTTPException

from .. import __version__
from ..core.common import PathIsh
from ..core.error import StoreIO
from ..core.logging import make_logger
from ..core.time import (
    DAY_MS,
    VALID_UNTIL_MS,
    Tz,
    day_start_ms,
    format_ms,
    get_tz,
    next_day_start_ms,
    tomorrow_midnight_ms,
)
from ..store import Store

logger = make_logger(__name__)

DEFAULT_SEARCH_INTERVAL_MS = 30 * DAY_MS
TOP_N = 10

bp = Blueprint('dashboard', __name__)


def create_app(db_file: PathIsh, *, timezone: str | None = None) -> Flask:
    app = Flask(__name__)
    # fail early on a bad timezone rather than on the first request
    get_tz(timezone)
    app.config.update(
        DB_FILE=str(db_file),
        TIMEZONE=timezone,
    )
    app.register_blueprint(bp)
    app.teardown_appcontext(_close_store)

    @app.template_filter('ymd')
    def _ymd(ms: int) -> str:
        return format_ms(ms, '%Y-%m-%d', tz=_tz())

    @app.template_filter('hms')
    def _hms(ms: int) -> str:
        return format_ms(ms, '%H:%M:%S', tz=_tz())

    return app


def _tz() -> Tz:
    return get_tz(current_app.config['TIMEZONE'])


def get_store() -> Store:
    """One connection per request; sqlite connections can't be shared between threads."""
    if 'store' not in g:
        g.store = Store(current_app.config['DB_FILE'])
    return g.store


def _close_store(_exc: BaseException | None) -> None:
    store = g.pop('store', None)
    if store is not None:
        store.close()


def _check_ms(name: str, value: int) -> int:
    # sqlite only binds 64-bit ints, datetime stops at year 9999
    if not (0 <= value <= VALID_UNTIL_MS):
        abort(400, description=f'{name} should be between 0 and {VALID_UNTIL_MS}, got {value}')
    return value


def _int_arg(name: str) -> int | None:
    raw = request.args.get(name, '').strip()
    if raw == '':
        return None
    try:
        value = int(raw)
    except ValueError:
        abort(400, description=f'{name} should be epoch milliseconds, got {raw!r}')
    return _check_ms(name, value)


@bp.route('/')
def index():
    tz = _tz()
    end = _int_arg('end')
    if end is None:
        end = tomorrow_midnight_ms(tz)
    start = _int_arg('start')
    if start is None:
        start = max(0, end - DEFAULT_SEARCH_INTERVAL_MS)
    if start >= end:
        abort(400, description=f'start ({start}) should be before end ({end})')
    keyword = request.args.get('keyword', '').strip()

    store = get_store()
    daily_counts = store.daily_counts(start, end, keyword, tz=tz)
    title_top = store.top_n_by_title(start, end, TOP_N, keyword)
    domain_top = store.top_n_by_domain(start, end, TOP_N, keyword)
    time_range = store.time_range()

    return render_template(
        'index.html',
        start=start,
        end=end,
        keyword=keyword,
        daily_counts=daily_counts,
        total=sum(cnt for _, cnt in daily_counts),
        title_top=title_top,
        domain_top=domain_top,
        time_range=time_range,
        version=__version__,
    )


@bp.route('/details/<int:day_ms>')
def details(day_ms: int):
    _check_ms('day', day_ms)
    tz = _tz()
    # any instant within the day works, it's snapped to the day's midnight
    start = day_start_ms(day_ms, tz)
    end = next_day_start_ms(day_ms, tz)
    keyword = request.args.get('keyword', '').strip()
    visits = list(get_store().range(start, end, keyword))
    return render_template(
        'details.html',
        day=start,
        keyword=keyword,
        visits=visits,
        version=__version__,
    )


@bp.app_errorhandler(HTTPException)
def _http_error(e: HTTPException):
    return jsonify(code=e.code, message=e.description), e.code


@bp.app_errorhandler(StoreIO)
def _store_error(e: StoreIO):
    logger.error(e)
    return jsonify(code=500, message=str(e)), 500
