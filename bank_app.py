# bank_app.py - CSRF demo: one transfer endpoint without protection,
# one that requires the per-session CSRF token.

import logging
import math
import re
import threading
from functools import wraps

from flask import Flask, request, session, jsonify
from flask_wtf.csrf import generate_csrf, validate_csrf
from wtforms.validators import ValidationError

from config import load_config

security_logger = logging.getLogger('security')

CSRF_HEADER = 'X-CSRF-Token'
CSRF_FIELD = '_csrf'


def login_required(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if 'user_id' not in session:
            return jsonify({'error': 'Please login first'}), 401
        return f(*args, **kwargs)
    return decorated_function


def request_data():
    """JSON object body, falling back to form fields."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) and data else request.form


def parse_amount(value):
    """Leading integer of value, or None when there isn't one."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    match = re.match(r'\s*([+-]?\d+)', str(value or ''))
    return int(match.group(1)) if match else None


class Ledger:
    """User id -> balance, with transfers applied under a lock."""

    def __init__(self, balances):
        self._balances = dict(balances)
        self._lock = threading.Lock()

    def balance(self, user_id):
        with self._lock:
            return self._balances.get(user_id, 0)

    def withdraw(self, user_id, amount):
        """Debit amount and return the new balance, or None if funds are short."""
        with self._lock:
            current = self._balances.get(user_id, 0)
            if current < amount:
                return None
            self._balances[user_id] = current - amount
            return self._balances[user_id]


def create_app(config_name=None):
    app = Flask(__name__)
    load_config(app, config_name)
    app.config['SESSION_COOKIE_NAME'] = 'bankSessionId'

    ledger = Ledger({app.config['DEMO_USER_ID']: app.config['INITIAL_BALANCE']})
    app.extensions['ledger'] = ledger

    def transfer(data):
        amount = parse_amount(data.get('amount'))
        to_account = data.get('toAccount')
        if amount is None or amount <= 0:
            return jsonify({'error': 'Invalid amount'}), 400

        new_balance = ledger.withdraw(session['user_id'], amount)
        if new_balance is None:
            security_logger.info("Transfer of %s refused for %s: insufficient funds",
                                 amount, session['user_id'])
            return jsonify({'error': 'Insufficient funds'}), 400

        security_logger.info("Transferred %s from %s to %s", amount, session['user_id'], to_account)
        return jsonify({
            'message': f'Transferred ${amount} to {to_account}',
            'newBalance': new_balance
        })

    @app.route('/')
    def index():
        return '''
        <h2>Bank Transfer Demo</h2>
        <button onclick="fetch('/login', {method: 'POST'}).then(r => r.json()).then(d => {
            document.getElementById('csrf').value = d.csrfToken;
        })">Login</button>
        <h3>Vulnerable transfer</h3>
        <form method="post" action="/api/vulnerable/transfer">
          Amount: <input name="amount"><br>
          To account: <input name="toAccount"><br>
          <input type="submit" value="Transfer">
        </form>
        <h3>Secure transfer</h3>
        <form method="post" action="/api/secure/transfer">
          <input type="hidden" id="csrf" name="_csrf">
          Amount: <input name="amount"><br>
          To account: <input name="toAccount"><br>
          <input type="submit" value="Transfer">
        </form>
        '''

    @app.route('/login', methods=['POST'])
    def login():
        # Single simulated user
        user_id = app.config['DEMO_USER_ID']
        session['user_id'] = user_id

        # Fresh token on every login
        session.pop('csrf_token', None)
        token = generate_csrf()

        security_logger.info("User %s logged in", user_id)
        return jsonify({
            'message': 'Logged in successfully',
            'balance': ledger.balance(user_id),
            'csrfToken': token
        })

    # No CSRF protection: any page the victim visits can post here
    @app.route('/api/vulnerable/transfer', methods=['POST'])
    @login_required
    def vulnerable_transfer():
        return transfer(request_data())

    @app.route('/api/secure/transfer', methods=['POST'])
    @login_required
    def secure_transfer():
        data = request_data()
        token = data.get(CSRF_FIELD) or request.headers.get(CSRF_HEADER)
        if not isinstance(token, str):
            token = None
        try:
            validate_csrf(token)
        except ValidationError as e:
            security_logger.warning("Rejected transfer for %s: %s", session['user_id'], e)
            return jsonify({'error': 'Invalid CSRF token'}), 403
        return transfer(data)

    @app.route('/api/balance')
    @login_required
    def balance():
        return jsonify({'balance': ledger.balance(session['user_id'])})

    return app


if __name__ == '__main__':
    create_app().run(port=3002, threaded=False)
