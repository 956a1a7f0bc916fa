from functools import wraps

from flask import g, jsonify

from wellbook.scheduling.access import current_actor


def actor_required(f):
    """Resolve the logged-in user into g.actor; deactivated accounts are refused"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        actor = current_actor()
        if actor is None:
            return jsonify({'error': 'account_inactive', 'message': 'Your account is not active.'}), 403
        g.actor = actor
        return f(*args, **kwargs)
    return decorated_function


def form_errors(form):
    """400 response carrying WTForms validation errors"""
    return jsonify({
        'error': 'invalid_request',
        'message': 'Please correct the highlighted fields.',
        'fields': form.errors
    }), 400
