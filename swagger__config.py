"""
Swagger/OpenAPI configuration for the Tattoo Studio API
"""

SWAGGER_CONFIG = {
    "headers": [],
    "specs": [
        {
            "endpoint": "apispec",
            "route": "/apispec.json",
        }
    ],
    "static_url_path": "/flasgger_static",
    "swagger_ui": True,
    "specs_route": "/api/docs",
}

SWAGGER_TEMPLATE = {
    "swagger": "2.0",
    "info": {
        "title": "Tattoo Studio API",
        "description": "Reservations, payment tracking, analytics, company inbox and chat notifications for the studio dashboard",
        "version": "1.0.0",
    },
    "host": "",
    "basePath": "/",
    "schemes": ["http", "https"],
    "securityDefinitions": {
        "Bearer": {
            "type": "apiKey",
            "name": "Authorization",
            "in": "header",
            "description": 'JWT Authorization header using the Bearer scheme. Example: "Authorization: Bearer {token}"',
        }
    },
    "security": [{"Bearer": []}],
    "tags": [
        {"name": "Authentication", "description": "Staff login and session"},
        {"name": "Reservations", "description": "Reservation CRUD and payment flags"},
        {"name": "Staff", "description": "Staff and artist lists"},
        {"name": "Analytics", "description": "Reservation analytics by creation date"},
        {"name": "Notifications", "description": "Chat relay notices and daily summary"},
        {"name": "Emails", "description": "Company inbox"},
        {"name": "Webhooks", "description": "Provider callbacks"},
    ],
    "definitions": {
        "Error": {
            "type": "object",
            "properties": {
                "error": {"type": "string"},
                "details": {"type": "string"},
            },
        },
        "Reservation": {
            "type": "object",
            "properties": {
                "id": {"type": "string"},
                "reservation_number": {"type": "integer", "example": 1042},
                "first_name": {"type": "string"},
                "last_name": {"type": "string"},
                "phone": {"type": "string"},
                "appointment_date": {"type": "string", "format": "date"},
                "appointment_time": {"type": "string", "example": "14:30"},
                "total_price": {"type": "number", "format": "float", "example": 250.0},
                "deposit_paid": {"type": "number", "format": "float", "example": 50.0},
                "remaining_amount": {"type": "number", "format": "float", "example": 200.0},
                "remaining_display": {"type": "string", "example": "€200.00"},
                "deposit_paid_status": {"type": "boolean"},
                "rest_paid_status": {"type": "boolean"},
                "is_paid": {"type": "boolean"},
                "payment_status": {
                    "type": "string",
                    "enum": ["Pending", "Deposit Paid", "Fully Paid"],
                },
                "artist_id": {"type": "string"},
                "artist_name": {"type": "string"},
                "notes": {"type": "string"},
                "design_images": {"type": "array", "items": {"type": "string"}},
                "created_at": {"type": "string", "format": "date-time"},
            },
        },
        "Staff": {
            "type": "object",
            "properties": {
                "id": {"type": "string"},
                "username": {"type": "string"},
                "name": {"type": "string"},
                "email": {"type": "string", "format": "email"},
                "role": {"type": "string", "enum": ["admin", "artist", "staff"]},
                "permissions": {"type": "array", "items": {"type": "string"}},
            },
        },
        "Email": {
            "type": "object",
            "properties": {
                "id": {"type": "string"},
                "message_id": {"type": "string"},
                "from_address": {"type": "string"},
                "subject": {"type": "string"},
                "is_read": {"type": "boolean"},
                "is_archived": {"type": "boolean"},
                "direction": {"type": "string", "enum": ["inbound", "outbound"]},
                "received_at": {"type": "string", "format": "date-time"},
            },
        },
    },
}
