"""Flash-style envelopes returned by mutating endpoints.

Business-rule refusals are ordinary 200 responses carrying
``status: error``; HTTP errors go through the app error handler instead.
"""


def success(message: str, data=None):
    body = {'status': 'success', 'message': message}
    if data is not None:
        body['data'] = data
    return body


def refusal(message: str):
    return {'status': 'error', 'message': message}
