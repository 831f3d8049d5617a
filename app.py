# app.py - Deliberately Insecure demo server
# For web security labs (SQLi, reflected XSS, CSRF)
# DO NOT use this code in production!

import logging
import sqlite3

from flask import Flask, request, jsonify

from config import load_config

logger = logging.getLogger(__name__)


# --- DATABASE INIT ---
def init_db():
    # In-memory: gone when the process exits
    conn = sqlite3.connect(':memory:', check_same_thread=False)
    conn.row_factory = sqlite3.Row
    c = conn.cursor()
    # Users: plaintext pw, personal data in the same table
    c.execute('''CREATE TABLE users (id INTEGER PRIMARY KEY, name TEXT, email TEXT, password TEXT, dob TEXT, address TEXT)''')
    c.executemany("INSERT INTO users (name, email, password, dob, address) VALUES (?, ?, ?, ?, ?)", [
        ('Alice', 'alice@example.com', 'password123', '1990-01-01', '123 Main St, City A'),
        ('Bob', 'bob@example.com', 'password456', '1992-02-02', '456 Elm St, City B'),
        ('Charlie', 'charlie@example.com', 'password789', '1994-03-03', '789 Oak St, City C'),
    ])
    conn.commit()
    return conn


def request_data():
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) and data else request.form


def create_app(config_name=None):
    app = Flask(__name__)
    load_config(app, config_name)

    conn = init_db()
    app.extensions['sqlite'] = conn

    @app.route('/')
    def index():
        return '''
        <h2>Vulnerable Demo</h2>
        <h3>SQL Injection</h3>
        <form method="get" action="/users">
          User ID: <input name="id"><br>
          <input type="submit" value="Look up">
        </form>
        <h3>XSS</h3>
        <form method="post" action="/submit">
          Comment: <input name="comment"><br>
          <input type="submit" value="Submit">
        </form>
        <h3>CSRF</h3>
        <form method="post" action="/csrf">
          <input type="hidden" name="action" value="delete">
          <input type="submit" value="Delete item">
        </form>
        '''

    # --- SQL INJECTION ---
    @app.route('/users')
    def users():
        user_id = request.args.get('id')
        # SQLi: id pasted straight into the query
        query = f"SELECT * FROM users WHERE id = {user_id}"
        logger.debug("Running query: %s", query)
        try:
            rows = conn.execute(query).fetchall()
        except sqlite3.Error as e:
            # Leaks the raw driver message
            return jsonify({'error': str(e)}), 500
        if rows:
            return jsonify([dict(r) for r in rows])
        return jsonify({'error': 'User not found'})

    # --- XSS ---
    @app.route('/submit', methods=['POST'])
    def submit():
        data = request_data()
        comment = data.get('comment', '')
        # XSS: rendered unescaped
        return f'<h1>Your Comment</h1><p>{comment}</p>'

    # --- CSRF (no token, no origin check) ---
    @app.route('/csrf', methods=['POST'])
    def csrf():
        data = request_data()
        if data.get('action') == 'delete':
            return 'Item deleted!'
        return 'No action taken.'

    return app


if __name__ == '__main__':
    create_app().run(port=3000, threaded=False)
