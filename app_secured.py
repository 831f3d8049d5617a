# app_secured.py - Blog demo with the fixes applied:
# parameterized queries, bcrypt passwords, escaped and sanitized output.

import logging
import re
import sqlite3

import bcrypt
import nh3
from flask import Flask, request, jsonify
from flask_talisman import Talisman
from markupsafe import escape

from config import load_config

logger = logging.getLogger(__name__)
security_logger = logging.getLogger('security')

# Formatting tags users may keep in bios and comments
ALLOWED_TAGS = {'b', 'i', 'em', 'strong'}
ALLOWED_THEMES = ('light', 'dark')
FONT_SIZE_RE = re.compile(r'[0-9]+px')


def check_password(password, hashed):
    """bcrypt check; passwords over 72 bytes never match."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), hashed)
    except ValueError:
        return False


def sanitize_rich_text(html):
    """Strip everything but basic formatting tags, and all attributes."""
    return nh3.clean(html, tags=ALLOWED_TAGS, attributes={'*': set()})


def sanitize_html(html):
    """Default safe allow-list, for content rendered as a full post."""
    return nh3.clean(html or '')


def init_db(bcrypt_rounds):
    conn = sqlite3.connect(':memory:', check_same_thread=False)
    conn.row_factory = sqlite3.Row
    c = conn.cursor()
    c.execute('''CREATE TABLE users
                 (id INTEGER PRIMARY KEY, username TEXT UNIQUE, password TEXT, email TEXT,
                  is_admin INTEGER DEFAULT 0, credit_card TEXT, api_key TEXT, profile_bio TEXT)''')
    c.execute('''CREATE TABLE blog_posts
                 (id INTEGER PRIMARY KEY, user_id INTEGER, title TEXT, content TEXT)''')
    c.execute('''CREATE TABLE comments
                 (id INTEGER PRIMARY KEY, post_id INTEGER, user_id INTEGER, content TEXT)''')

    admin_hash = bcrypt.hashpw('admin123'.encode('utf-8'), bcrypt.gensalt(rounds=bcrypt_rounds))
    alice_hash = bcrypt.hashpw('alice123'.encode('utf-8'), bcrypt.gensalt(rounds=bcrypt_rounds))
    c.executemany("INSERT INTO users (username, password, email, is_admin, credit_card, api_key) VALUES (?, ?, ?, ?, ?, ?)", [
        ('admin', admin_hash, 'admin@blog.com', 1, '4532-xxxx-xxxx-9876', 'sk_live_admin_123456'),
        ('alice', alice_hash, 'alice@blog.com', 0, '4532-xxxx-xxxx-5678', 'sk_live_user_123456'),
    ])
    c.executemany("INSERT INTO blog_posts (user_id, title, content) VALUES (?, ?, ?)", [
        (1, 'Welcome to the blog', 'First post, <b>welcome</b> everyone!'),
        (2, 'Security tips', 'Never trust user input. <i>Ever.</i>'),
    ])
    # Stored before sanitization existed; cleaned on the way out
    c.execute("INSERT INTO comments (post_id, user_id, content) VALUES (?, ?, ?)",
              (1, 2, 'Great post! <script>alert("xss")</script>'))
    conn.commit()
    return conn


def register_error_handlers(app):
    """JSON errors that never expose driver messages."""

    @app.errorhandler(sqlite3.Error)
    def database_error(error):
        logger.exception("Database error")
        return jsonify({'error': 'Database error'}), 500

    @app.errorhandler(400)
    def bad_request(error):
        return jsonify({'error': 'Invalid input'}), 400

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({'error': 'Not found'}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({'error': 'Method not allowed'}), 405

    @app.errorhandler(500)
    def internal_error(error):
        return jsonify({'error': 'Server error'}), 500


def create_app(config_name=None):
    app = Flask(__name__)
    load_config(app, config_name)

    # Security headers; HTTPS is left to whatever fronts the demo
    Talisman(app, force_https=False, session_cookie_secure=False)

    conn = init_db(app.config['BCRYPT_ROUNDS'])
    app.extensions['sqlite'] = conn
    register_error_handlers(app)

    def payload():
        data = request.get_json(silent=True)
        return data if isinstance(data, dict) and data else request.form

    # --- SQL injection fixes ---

    @app.route('/api/login', methods=['POST'])
    def login():
        data = payload()
        username = data.get('username')
        password = data.get('password')
        if not username or not password or not isinstance(username, str) or not isinstance(password, str):
            return jsonify({'error': 'Invalid input'}), 400

        row = conn.execute(
            "SELECT id, username, is_admin, email, password FROM users WHERE username = ?",
            (username,)).fetchone()
        if not row or not check_password(password, row['password']):
            security_logger.warning("Failed login for %r", username)
            return jsonify({'error': 'Invalid credentials'}), 401

        user = dict(row)
        del user['password']
        security_logger.info("User %s logged in", username)
        return jsonify(user)

    @app.route('/api/posts/search')
    def search_posts():
        keyword = request.args.get('keyword')
        if not keyword:
            return jsonify({'error': 'Invalid input'}), 400

        pattern = f'%{keyword}%'
        rows = conn.execute(
            "SELECT id, title, content FROM blog_posts WHERE title LIKE ? OR content LIKE ?",
            (pattern, pattern)).fetchall()
        return jsonify([dict(r) for r in rows])

    @app.route('/api/users/profile')
    def user_profile():
        username = request.args.get('username')
        if not username:
            return jsonify({'error': 'Invalid input'}), 400

        # Only public columns
        row = conn.execute("SELECT username, email FROM users WHERE username = ?", (username,)).fetchone()
        if not row:
            return jsonify({'error': 'User not found'}), 404
        return jsonify(dict(row))

    @app.route('/users')
    def users():
        user_id = request.args.get('id', type=int)
        if user_id is None:
            return jsonify({'error': 'Invalid input'}), 400

        row = conn.execute("SELECT id, username, email FROM users WHERE id = ?", (user_id,)).fetchone()
        if not row:
            return jsonify({'error': 'User not found'}), 404
        return jsonify(dict(row))

    # --- XSS fixes ---

    @app.route('/api/profile', methods=['POST'])
    def update_profile():
        data = payload()
        username = data.get('username')
        bio = data.get('bio')
        if not isinstance(username, str) or not isinstance(bio, str):
            return jsonify({'error': 'Invalid input'}), 400

        cur = conn.execute("UPDATE users SET profile_bio = ? WHERE username = ?",
                           (sanitize_rich_text(bio), username))
        conn.commit()
        if cur.rowcount == 0:
            return jsonify({'error': 'User not found'}), 404
        return jsonify({'success': True})

    @app.route('/api/posts/<int:post_id>/comments', methods=['POST'])
    def add_comment(post_id):
        data = payload()
        content = data.get('content')
        try:
            user_id = int(data.get('userId'))
        except (TypeError, ValueError, OverflowError):
            return jsonify({'error': 'Invalid input'}), 400
        if not isinstance(content, str) or not content:
            return jsonify({'error': 'Invalid input'}), 400

        if not conn.execute("SELECT 1 FROM blog_posts WHERE id = ?", (post_id,)).fetchone():
            return jsonify({'error': 'Post not found'}), 404
        if not conn.execute("SELECT 1 FROM users WHERE id = ?", (user_id,)).fetchone():
            return jsonify({'error': 'User not found'}), 404

        conn.execute("INSERT INTO comments (post_id, user_id, content) VALUES (?, ?, ?)",
                     (post_id, user_id, sanitize_rich_text(content)))
        conn.commit()
        return jsonify({'success': True})

    @app.route('/api/search')
    def search():
        term = request.args.get('q', '')
        posts = conn.execute('''SELECT blog_posts.*, users.username
                                FROM blog_posts
                                JOIN users ON blog_posts.user_id = users.id
                                WHERE title LIKE ?''', (f'%{term}%',)).fetchall()

        results = ''.join(f'''
          <div>
            <h3>{escape(p['title'])}</h3>
            <p>By: {escape(p['username'])}</p>
          </div>''' for p in posts)
        return f'''
        <h2>Search Results for: {escape(term)}</h2>
        <div>{results}</div>
        '''

    @app.route('/api/posts/<int:post_id>')
    def get_post(post_id):
        post = conn.execute("SELECT * FROM blog_posts WHERE id = ?", (post_id,)).fetchone()
        if not post:
            return jsonify({'error': 'Post not found'}), 404

        comments = conn.execute('''SELECT comments.*, users.username
                                   FROM comments
                                   JOIN users ON comments.user_id = users.id
                                   WHERE post_id = ?''', (post_id,)).fetchall()

        safe_post = dict(post)
        safe_post['title'] = str(escape(post['title']))
        safe_post['content'] = sanitize_html(post['content'])

        safe_comments = []
        for comment in comments:
            c = dict(comment)
            c['username'] = str(escape(comment['username']))
            c['content'] = sanitize_html(comment['content'])
            safe_comments.append(c)

        return jsonify({'post': safe_post, 'comments': safe_comments})

    @app.route('/api/theme-preview')
    def theme_preview():
        theme = request.args.get('theme')
        font_size = request.args.get('fontSize') or ''
        return jsonify({
            'theme': theme if theme in ALLOWED_THEMES else 'light',
            'fontSize': font_size if FONT_SIZE_RE.fullmatch(font_size) else '16px'
        })

    @app.route('/submit', methods=['POST'])
    def submit():
        data = payload()
        comment = data.get('comment', '')
        return f'<h1>Your Comment</h1><p>{escape(comment)}</p>'

    return app


if __name__ == '__main__':
    create_app().run(port=3001, threaded=False)
