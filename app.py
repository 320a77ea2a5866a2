import logging
import sys

from flask import Flask, jsonify, request
from flask_cors import CORS
from pymongo.errors import PyMongoError

from settings import ConfigError, load_settings, setup_logging
from task_store import TaskValidationError, connect_store
from task_validation import TitleValidationError, validate_title

logger = logging.getLogger(__name__)

CORS_METHODS = ['GET', 'POST', 'PUT', 'DELETE', 'PATCH', 'HEAD']
CORS_HEADERS = ['Authorization', 'Content-Type']


def envelope(success, data=None, message=None, error=None):
    body = {'success': success}
    if data is not None:
        body['data'] = data
    if message is not None:
        body['message'] = message
    if error is not None:
        body['error'] = error
    return jsonify(body)


def _request_title():
    payload = request.get_json(silent=True)
    if isinstance(payload, dict):
        return payload.get('title')
    return request.form.get('title')


def create_app(store, client_url=None):
    """Build the Flask app around an already connected task store."""
    app = Flask(__name__)

    if client_url:
        CORS(
            app,
            origins=[client_url],
            methods=CORS_METHODS,
            allow_headers=CORS_HEADERS,
            supports_credentials=True,
        )

    @app.route('/api/working')
    def working():
        return jsonify({'status': 'OK', 'message': 'Server is working'})

    @app.route('/api/tasks', methods=['GET'])
    def list_tasks():
        try:
            tasks = store.list_recent()
        except Exception as exc:
            logger.exception('Listing tasks failed')
            return envelope(False, message='Error fetching tasks', error=str(exc)), 500
        return envelope(True, data=[task.to_dict() for task in tasks])

    @app.route('/api/tasks', methods=['POST'])
    def create_task():
        try:
            title = validate_title(_request_title())
        except TitleValidationError as exc:
            return envelope(False, message=exc.message), 400

        try:
            task = store.create(title)
        except TaskValidationError as exc:
            return envelope(False, message=exc.message), 400
        except Exception as exc:
            logger.exception('Creating task failed')
            return envelope(False, message='Error creating task', error=str(exc)), 500

        logger.info('Created task id=%s', task.id)
        return envelope(True, data=task.to_dict(), message='Task created successfully'), 201

    @app.route('/api/tasks/<task_id>', methods=['DELETE'])
    def delete_task(task_id):
        if not store.is_valid_id(task_id):
            return envelope(False, message='Invalid task ID format'), 400

        try:
            task = store.delete(task_id)
        except Exception as exc:
            logger.exception('Deleting task %s failed', task_id)
            return envelope(False, message='Error deleting task', error=str(exc)), 500

        if task is None:
            return envelope(False, message='Task not found'), 404

        logger.info('Deleted task id=%s', task.id)
        return envelope(True, data=task.to_dict(), message='Task deleted successfully')

    return app


def main():
    try:
        settings = load_settings()
    except ConfigError as exc:
        setup_logging()
        logger.error('Configuration error: %s', exc)
        sys.exit(1)

    setup_logging(settings.log_level)

    try:
        store = connect_store(settings.mongodb_uri, settings.db_name)
    except PyMongoError as exc:
        logger.error('Database connection error: %s', exc)
        sys.exit(1)

    app = create_app(store, client_url=settings.client_url)
    logger.info('Server is running on port %s', settings.port)
    app.run(host='0.0.0.0', port=settings.port)


if __name__ == '__main__':
    main()
