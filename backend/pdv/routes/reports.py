# Overview: Flask API routes for sales reporting.

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_auth, require_capability
from ..errors import PosError
from ..permissions import Capability
from ..services import reporting_service
from ..services.reporting_service import ReportError
from pdv.time_utils import resolve_timezone
from . import get_repository


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/sales")
@require_auth
@require_capability(Capability.REPORTS)
def sales_report_route():
    """
    Sales report over every register session (open or closed).

    Query params:
    - range: today | 7days (default) | 30days | all
    - top: number of ranked products (default 5, 0 for all)
    """
    try:
        time_range = reporting_service.TimeRange.parse(request.args.get("range", "7days"))
        top = request.args.get("top", type=int)
        if top is None:
            top_limit = reporting_service.TOP_PRODUCTS_LIMIT
        elif top < 0:
            return jsonify({"error": "top must be zero or positive"}), 400
        else:
            top_limit = top or None

        report = reporting_service.build_report(
            get_repository().list_session_history(),
            time_range,
            tz=resolve_timezone(current_app.config.get("PDV_TIMEZONE")),
            top_limit=top_limit,
        )
        return jsonify(report), 200

    except ReportError as e:
        return jsonify({"error": str(e)}), 400
    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to build sales report")
        return jsonify({"error": "Internal server error"}), 500
