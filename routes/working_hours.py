from flask import Blueprint, request, jsonify, g

from core import wiring
from security.rbac import require_roles
from utils.audit import log_event

working_hours_bp = Blueprint("working_hours", __name__, url_prefix="/providers")


def _hours_json(rows):
    return [
        {"weekday": wh.weekday, "start_time": wh.start_time, "end_time": wh.end_time}
        for wh in rows
    ]


@working_hours_bp.get("/<int:provider_id>/working-hours")
def get_working_hours(provider_id: int):
    rows = wiring.working_hours_book().for_provider(provider_id)
    return jsonify(working_hours=_hours_json(rows)), 200


@working_hours_bp.put("/me/working-hours")
@require_roles("PROVIDER")
def replace_working_hours():
    data = request.get_json(silent=True) or {}
    entries = data.get("working_hours")
    if entries is None:
        return jsonify(error="working_hours is required"), 400

    rows = wiring.working_hours_book().replace(g.user.id, entries)

    log_event("WORKING_HOURS_UPDATE", user_id=g.user.id, entity="provider", entity_id=g.user.id,
              metadata={"days": [r.weekday for r in rows]})
    return jsonify(working_hours=_hours_json(rows)), 200
