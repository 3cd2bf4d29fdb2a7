from flask import jsonify


def ok(data=None, message="success", status=200):
    payload = {"status": "success", "message": message}
    if data is not None:
        payload["data"] = data
    return jsonify(payload), status


def error(message, status=400, code=None):
    return jsonify({
        "status": "error",
        "message": message,
        "code": code or status
    }), status


def validation_error_response(errors):
    fields = [
        {
            "field": ".".join(str(part) for part in e.get("loc", ())),
            "message": e.get("msg", "Invalid value"),
        }
        for e in errors
    ]
    first = fields[0] if fields else {"field": "", "message": "Invalid request"}
    message = f"{first['field']}: {first['message']}" if first["field"] else first["message"]
    return jsonify({
        "status": "error",
        "message": message,
        "code": 400,
        "errors": fields,
    }), 400


def csv_response(body: str, filename: str):
    from flask import Response
    return Response(
        body,
        mimetype="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


def pdf_response(body: bytes, filename: str):
    from flask import Response
    return Response(
        body,
        mimetype="application/pdf",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
