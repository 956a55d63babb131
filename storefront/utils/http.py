"""Request parsing helpers shared by the JSON blueprints."""
from flask import current_app, request

from storefront.exceptions import InvalidArgumentError


def json_body():
    """The request's JSON object; anything else is a 400."""
    data = request.get_json(silent=True)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise InvalidArgumentError('Request body must be a JSON object')
    return data


def page_args():
    """page/limit query args with the configured defaults."""
    return {
        'page': request.args.get('page'),
        'limit': request.args.get('limit') or current_app.config['DEFAULT_PAGE_SIZE'],
        'max_limit': current_app.config['MAX_PAGE_SIZE'],
    }
