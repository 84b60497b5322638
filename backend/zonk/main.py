from flask import Blueprint, current_app, jsonify

main = Blueprint('main', __name__)

@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the Zonk game server!'})

@main.route('/health')
def health():
    stats = current_app.extensions['zonk_rooms'].stats()
    return jsonify({'status': 'OK', 'rooms': stats['rooms'], 'players': stats['players']})
