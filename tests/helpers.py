from unittest.mock import Mock


def json_response(status_code=200, body=None, text=None):
    response = Mock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 400
    if body is None:
        response.json.side_effect = ValueError("No JSON object could be decoded")
        response.text = text or ""
    else:
        response.json.return_value = body
        response.text = text or str(body)
    return response
