from __future__ import annotations

from flask import Blueprint, jsonify, request
from werkzeug.exceptions import MethodNotAllowed

from propertyhub.services.interaction_ledger_service import (
    list_interested_buyers,
    register_interest,
    register_like,
    remove_like,
)
from propertyhub.services.listing_query_service import ListingSearchParams, search_listings
from propertyhub.services.listing_service import create_listing, get_owner_contact, list_my_listings
from propertyhub.services.ownership_service import delete_listing_as_owner, update_listing_as_owner
from propertyhub.utils import policy
from propertyhub.utils.auth_context import require_auth
from propertyhub.utils.errors import ValidationError

properties_bp = Blueprint("properties_bp", __name__, url_prefix="/api/properties")


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


@properties_bp.get("")
def list_properties():
    params = ListingSearchParams.from_args(request.args)
    return jsonify(search_listings(params)), 200


@properties_bp.post("")
def create_property():
    auth = require_auth()
    listing = create_listing(auth, _json_body())
    return jsonify({"ok": True, "listing": listing}), 201


@properties_bp.get("/myproperties")
def my_properties():
    auth = require_auth()
    return jsonify({"ok": True, "listings": list_my_listings(auth)}), 200


@properties_bp.get("/<int:listing_id>/owner")
def property_owner(listing_id: int):
    require_auth()
    return jsonify({"ok": True, "owner": get_owner_contact(listing_id)}), 200


@properties_bp.patch("/<int:listing_id>")
def update_property(listing_id: int):
    auth = require_auth()
    listing = update_listing_as_owner(listing_id, auth, _json_body())
    return jsonify({"ok": True, "listing": listing}), 200


@properties_bp.delete("/<int:listing_id>")
def delete_property(listing_id: int):
    auth = require_auth()
    listing = delete_listing_as_owner(listing_id, auth)
    return jsonify({"ok": True, "message": "Property deleted", "listing": listing}), 200


@properties_bp.post("/<int:listing_id>/interest")
def express_interest(listing_id: int):
    auth = require_auth()
    owner = register_interest(listing_id, auth)
    return jsonify({"ok": True, "message": "Interest registered", "owner": owner}), 200


@properties_bp.get("/<int:listing_id>/interest")
def interested_buyers(listing_id: int):
    auth = require_auth()
    return jsonify({"ok": True, "buyers": list_interested_buyers(listing_id, auth)}), 200


@properties_bp.post("/<int:listing_id>/like")
def like_property(listing_id: int):
    auth = require_auth()
    counts = register_like(listing_id, auth)
    return jsonify({"ok": True, **counts}), 200


@properties_bp.delete("/<int:listing_id>/like")
def unlike_property(listing_id: int):
    if not policy.likes_allow_unlike():
        raise MethodNotAllowed(valid_methods=["POST"], description="Unliking is disabled")
    auth = require_auth()
    counts = remove_like(listing_id, auth)
    return jsonify({"ok": True, **counts}), 200
