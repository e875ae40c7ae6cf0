from datetime import datetime

from flask import Blueprint, jsonify, request

from ...permissions import current_store, require_permission
from ...services.analytics import PERIODS, period_bounds, reservations_in_period, summarize
from ...services.reservation_store import reservation_json

analytics_bp = Blueprint("analytics", __name__, url_prefix="/api/analytics")


# -------------------------------------------------------------------
# SUMMARY: reservations created in a period + money aggregates
# -------------------------------------------------------------------
@analytics_bp.route("/summary", methods=["GET"])
@require_permission("reservations")
def get_summary():
    """
    Reservation analytics by creation date
    ---
    tags:
      - Analytics
    parameters:
      - name: period
        in: query
        type: string
        enum: [today, yesterday, week, month]
        default: today
    responses:
      200:
        description: Aggregates and the matching reservations (newest first)
        schema:
          type: object
          properties:
            period: {type: string}
            label: {type: string}
            summary:
              type: object
              properties:
                total_reservations: {type: integer}
                total_revenue: {type: number}
                total_deposits: {type: number}
                average_ticket: {type: number}
                fully_paid_count: {type: integer}
                pending_count: {type: integer}
      400:
        description: Unknown period
    """
    period = request.args.get("period", "today")
    if period not in PERIODS:
        return (
            jsonify({"error": f"period must be one of: {', '.join(PERIODS)}"}),
            400,
        )

    store = current_store()
    now = datetime.now()
    start, end = period_bounds(period, now)
    records = reservations_in_period(store.list()["reservations"], period, now)
    stats = summarize(records)

    reservations = []
    for r in records:
        payload = reservation_json(r)
        payload["artist_name"] = store.artist_name(r.get("artist_id")) or "Not assigned"
        reservations.append(payload)

    return jsonify(
        {
            "period": period,
            "label": PERIODS[period],
            "start": start.isoformat(),
            "end": end.isoformat(),
            "summary": {
                "total_reservations": stats["total_reservations"],
                "total_revenue": round(float(stats["total_revenue"]), 2),
                "total_deposits": round(float(stats["total_deposits"]), 2),
                "average_ticket": round(float(stats["average_ticket"]), 2),
                "fully_paid_count": stats["fully_paid_count"],
                "pending_count": stats["pending_count"],
            },
            "reservations": reservations,
        }
    )
