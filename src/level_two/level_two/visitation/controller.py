from __future__ import annotations

import logging

from flask import Flask, jsonify

from ..common.guards import admin_required, current_capabilities
from ..core.constants import MAX_SERVANT_SECTIONS
from ..core.exceptions import AuthorizationError, DomainError, ValidationError
from ..container import Container
from ..records.controller import register_recorder
from ..records.model import VISITATION

logger = logging.getLogger(__name__)


def register(app: Flask, container: Container) -> None:
    register_recorder(app, container, VISITATION, slug="visitation", template="visitation.html")

    @app.route("/api/visitation/distribute", methods=["POST"], endpoint="visitation_distribute")
    @admin_required
    def visitation_distribute():
        try:
            count = container.assignment_service.distribute_round_robin(current_role=current_capabilities().role)
        except AuthorizationError as e:
            return jsonify({"success": False, "message": str(e)}), 403
        except ValidationError as e:
            return jsonify({"success": False, "message": str(e)}), 400
        except DomainError as e:
            return jsonify({"success": False, "message": str(e)}), 500
        except Exception:
            logger.exception("distribution failed")
            return jsonify({"success": False, "message": "فشل توزيع الطلاب. تأكد من امتلاك صلاحيات الادمن"}), 500

        return jsonify(
            {
                "success": True,
                "count": count,
                "message": f"تم توزيع الطلاب على {MAX_SERVANT_SECTIONS} خدام بالتساوي",
            }
        )
