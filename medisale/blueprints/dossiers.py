"""CNAM dossier workflow blueprint."""
from flask import Blueprint, request, jsonify, current_app, g

from medisale.database import get_session
from medisale.exceptions import ValidationError
from medisale.middleware import require_login
from medisale.services.insurance_service import advance_dossier, get_dossier_history
from medisale.blueprints.sales import serialize_dossier
from medisale.utils.formatters import datetime_iso

dossiers_bp = Blueprint('dossiers', __name__, url_prefix='/api/dossiers')


def _serialize_history(entry) -> dict:
    return {
        'id': entry.id,
        'dossierId': entry.dossier_id,
        'step': entry.step,
        'status': entry.status.value,
        'previousStatus': entry.previous_status.value if entry.previous_status else None,
        'changedById': entry.changed_by_id,
        'changedAt': datetime_iso(entry.changed_at),
        'notes': entry.notes,
    }


@dossiers_bp.route('/<int:dossier_id>/advance', methods=['POST'])
@require_login
def advance(dossier_id):
    """Move a dossier to a new workflow status."""
    data = request.get_json(silent=True) or {}

    status = data.get('status')
    if not status:
        raise ValidationError('Statut requis', [{'field': 'status', 'message': 'Champ obligatoire'}])

    step = data.get('step')
    if step is not None:
        try:
            step = int(step)
        except (TypeError, ValueError):
            raise ValidationError('Étape invalide', [{'field': 'step', 'message': 'Doit être un entier'}])

    dossier = advance_dossier(
        get_session(), dossier_id, status, g.user_id,
        step=step, notes=data.get('notes')
    )
    current_app.logger.info(f"Dossier {dossier.dossier_number} moved to {dossier.status.value} by user {g.user_id}")

    return jsonify({'message': 'Dossier mis à jour', 'dossier': serialize_dossier(dossier)})


@dossiers_bp.route('/<int:dossier_id>/history', methods=['GET'])
@require_login
def history(dossier_id):
    """Step history of a dossier, oldest first."""
    entries = get_dossier_history(get_session(), dossier_id)
    return jsonify({'dossierId': dossier_id, 'history': [_serialize_history(e) for e in entries]})
