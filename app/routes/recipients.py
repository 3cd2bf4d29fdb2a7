from flask import Blueprint, request
from models import db
from models.recipient import Recipient
from app.version import API_PREFIX
from app.errors import Conflict, NotFound, ValidationError
from app.schemas.users import RecipientRequest, RecipientUpdateRequest
from app.utils import ok, auth_required, permission_required, transactional, validate_schema

recipients_bp = Blueprint("recipients", __name__, url_prefix=f"{API_PREFIX}/recipients")


def _get_recipient(recipient_id) -> Recipient:
    recipient = db.session.get(Recipient, recipient_id)
    if not recipient:
        raise NotFound("Recipient not found")
    return recipient


def _email_taken(email, exclude_id=None) -> bool:
    q = Recipient.query.filter(Recipient.email == email)
    if exclude_id:
        q = q.filter(Recipient.id != exclude_id)
    return q.first() is not None


@recipients_bp.route("", methods=["GET"])
@auth_required
@permission_required("recipients:read")
def list_recipients():
    recipients = Recipient.query.order_by(Recipient.created_at.desc(), Recipient.id.desc()).all()
    return ok([r.to_dict() for r in recipients])


@recipients_bp.route("", methods=["POST"])
@auth_required
@permission_required("recipients:write")
@validate_schema(RecipientRequest)
def create_recipient():
    data = request.validated_data
    email = str(data.email).lower()
    if _email_taken(email):
        raise Conflict("Recipient email already exists")
    recipient = Recipient(name=data.name, email=email, types=sorted(set(data.types)), is_active=data.is_active)
    with transactional("Failed to add recipient"):
        db.session.add(recipient)
    return ok(recipient.to_dict(), message="Recipient created", status=201)


@recipients_bp.route("/<int:recipient_id>", methods=["PUT"])
@auth_required
@permission_required("recipients:write")
@validate_schema(RecipientUpdateRequest)
def update_recipient(recipient_id):
    recipient = _get_recipient(recipient_id)
    changes = request.validated_data.model_dump(exclude_unset=True)
    if not changes:
        raise ValidationError("No fields to update")
    if changes.get("email"):
        changes["email"] = str(changes["email"]).lower()
        if _email_taken(changes["email"], exclude_id=recipient.id):
            raise Conflict("Recipient email already exists")
    if "types" in changes:
        changes["types"] = sorted(set(changes["types"] or []))
    with transactional("Failed to update recipient"):
        for key, value in changes.items():
            setattr(recipient, key, value)
    return ok(recipient.to_dict(), message="Recipient updated")


@recipients_bp.route("/<int:recipient_id>", methods=["DELETE"])
@auth_required
@permission_required("recipients:write")
def delete_recipient(recipient_id):
    recipient = _get_recipient(recipient_id)
    with transactional("Failed to delete recipient"):
        db.session.delete(recipient)
    return ok(message="Recipient deleted")
