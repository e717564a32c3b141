from utils.timeutil import iso


def _money(value):
    return float(value) if value is not None else None


def user_json(u, include_roles=False):
    out = {
        "id": u.id,
        "email": u.email,
        "fullName": u.full_name,
        "phoneNumber": u.phone_number,
        "status": u.status,
        "createdAt": iso(u.created_at),
    }
    if include_roles:
        out["roles"] = [r.name for r in u.roles]
    return out


def facility_json(f):
    return {
        "id": f.id,
        "owner": f.owner_id,
        "name": f.name,
        "description": f.description,
        "sports": list(f.sports or []),
        "category": f.category,
        "pricePerHour": _money(f.price_per_hour),
        "phone": f.phone,
        "email": f.email,
        "address": {
            "line1": f.address_line1,
            "line2": f.address_line2,
            "city": f.city,
            "state": f.state,
            "pincode": f.pincode,
            "geo": {"lat": f.lat, "lng": f.lng},
        },
        "courts": list(f.courts or []),
        "openHours": {"open": f.open_time, "close": f.close_time},
        "amenities": list(f.amenities or []),
        "images": list(f.images or []),
        "isActive": f.is_active,
        "isApproved": f.is_approved,
        "rating": f.rating,
        "ratingCount": f.rating_count,
        "createdAt": iso(f.created_at),
        "updatedAt": iso(f.updated_at),
    }


def booking_json(b, include_facility=False, include_user=False):
    out = {
        "id": b.id,
        "user": b.user_id,
        "facility": b.facility_id,
        "startTime": iso(b.start_time),
        "endTime": iso(b.end_time),
        "amount": _money(b.amount),
        "status": b.status,
        "selectedCourts": list(b.selected_courts or []),
        "sport": b.sport,
        "notes": b.notes,
        "rating": b.rating,
        "review": b.review,
        "reviewedAt": iso(b.reviewed_at),
        "cancelledAt": iso(b.cancelled_at),
        "createdAt": iso(b.created_at),
        "updatedAt": iso(b.updated_at),
    }
    if include_facility and b.facility is not None:
        out["facility"] = {
            "id": b.facility.id,
            "name": b.facility.name,
            "city": b.facility.city,
            "pricePerHour": _money(b.facility.price_per_hour),
        }
    if include_user and b.user is not None:
        out["user"] = {"id": b.user.id, "fullName": b.user.full_name, "email": b.user.email}
    return out


def review_json(b):
    return {
        "id": b.id,
        "rating": b.rating,
        "review": b.review,
        "reviewedAt": iso(b.reviewed_at),
        "sport": b.sport,
        "user": {"id": b.user_id, "fullName": b.user.full_name if b.user else None},
    }
