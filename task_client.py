"""Terminal client for the task API.

TaskService wraps the HTTP calls, TaskBoard holds what the user sees
(list, input, loading flag, inline error, row being deleted, toasts) and
TaskBoardCLI drives it from stdin.
"""
import argparse
import logging
import os
import time
from dataclasses import dataclass

import requests

from settings import load_api_url, setup_logging
from task_store import Task
from task_validation import TITLE_REQUIRED, TitleValidationError, validate_title

logger = logging.getLogger(__name__)

FETCH_FALLBACK = 'Failed to fetch tasks'
CREATE_FALLBACK = 'Failed to create task'
DELETE_FALLBACK = 'Failed to delete task'
EMPTY_TITLE_MESSAGE = 'Please enter a task title'
CONFIRM_DELETE_MESSAGE = 'Are you sure you want to delete this task?'

TOAST_AUTO_CLOSE = 3.0


class ApiError(Exception):
    """A failed API call.

    ``server_message`` is the envelope's message when the server sent one,
    ``transport_message`` describes the HTTP failure itself.
    """

    def __init__(self, server_message=None, transport_message=None, status_code=None):
        super().__init__(server_message or transport_message or 'API request failed')
        self.server_message = server_message
        self.transport_message = transport_message
        self.status_code = status_code


def error_message(exc, fallback):
    """Pick what to show: server message, then transport error text, then fallback."""
    if isinstance(exc, ApiError):
        return exc.server_message or exc.transport_message or fallback
    return str(exc) or fallback


class TaskService:
    def __init__(self, base_url, session=None, timeout=None):
        self.base_url = base_url.rstrip('/')
        self.session = session or requests.Session()
        self.timeout = timeout

    def _request(self, method, path, **kwargs):
        url = self.base_url + path
        logger.debug('%s %s', method, url)
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            raise ApiError(transport_message=str(exc)) from exc

        try:
            body = response.json()
        except ValueError:
            body = None
        server_message = body.get('message') if isinstance(body, dict) else None

        if not response.ok:
            raise ApiError(
                server_message=server_message,
                transport_message='Request failed with status code %d' % response.status_code,
                status_code=response.status_code,
            )
        if not isinstance(body, dict):
            raise ApiError(transport_message='Malformed response from server',
                           status_code=response.status_code)
        return body

    def get_all_tasks(self):
        return self._request('GET', '/tasks')

    def create_task(self, title):
        return self._request('POST', '/tasks', json={'title': title})

    def delete_task(self, task_id):
        return self._request('DELETE', '/tasks/%s' % task_id)


def _unwrap(body, fallback):
    if not body.get('success'):
        raise ApiError(server_message=body.get('message') or fallback)
    return body.get('data')


def format_created(value):
    """Local time, e.g. 'Oct 19, 2026, 05:54 PM'."""
    return value.astimezone().strftime('%b %d, %Y, %I:%M %p')


@dataclass
class Notification:
    kind: str
    text: str
    expires_at: float


class Toaster:
    """Transient notifications that disappear after ``auto_close`` seconds."""

    def __init__(self, auto_close=TOAST_AUTO_CLOSE, clock=time.monotonic):
        self.auto_close = auto_close
        self._clock = clock
        self._items = []

    def success(self, text):
        self._push('success', text)

    def error(self, text):
        self._push('error', text)

    def _push(self, kind, text):
        self._items.append(Notification(kind, text, self._clock() + self.auto_close))

    def active(self):
        now = self._clock()
        self._items = [item for item in self._items if item.expires_at > now]
        return list(self._items)


def _confirm_on_stdin(message):
    answer = input('%s [y/N] ' % message)
    return answer.strip().lower() in ('y', 'yes')


class TaskBoard:
    """View state for the task list.

    The list only changes after the server confirms a request.
    """

    def __init__(self, service, confirm=_confirm_on_stdin, toaster=None):
        self.service = service
        self.confirm = confirm
        self.toaster = toaster or Toaster()
        self.tasks = []
        self.title_input = ''
        self.loading = False
        self.error = None
        self.deleting_id = None

    @property
    def can_submit(self):
        return not self.loading and bool(self.title_input.strip())

    def can_delete(self, task_id):
        return self.deleting_id != task_id

    def load(self):
        self.loading = True
        self.error = None
        try:
            data = _unwrap(self.service.get_all_tasks(), FETCH_FALLBACK)
            self.tasks = [Task.from_dict(item) for item in data or []]
        except (ApiError, KeyError, TypeError, ValueError) as exc:
            self._fail(exc, FETCH_FALLBACK)
        finally:
            self.loading = False

    def submit(self, title=None):
        """Send the input as a new task. Returns True when a task was added."""
        if title is not None:
            self.title_input = title
        if self.loading:
            return False

        try:
            trimmed = validate_title(self.title_input)
        except TitleValidationError as exc:
            if exc.reason == TITLE_REQUIRED:
                self.toaster.error(EMPTY_TITLE_MESSAGE)
            else:
                self.toaster.error(exc.message)
            return False

        self.loading = True
        self.error = None
        try:
            data = _unwrap(self.service.create_task(trimmed), CREATE_FALLBACK)
            task = Task.from_dict(data)
        except (ApiError, KeyError, TypeError, ValueError) as exc:
            self._fail(exc, CREATE_FALLBACK)
            return False
        finally:
            self.loading = False

        self.tasks = [task] + self.tasks
        self.title_input = ''
        self.toaster.success('Task added successfully!')
        return True

    def delete(self, task_id):
        """Delete after confirmation. Returns True when the task was removed."""
        if not self.can_delete(task_id):
            return False
        if not self.confirm(CONFIRM_DELETE_MESSAGE):
            return False

        self.deleting_id = task_id
        self.error = None
        try:
            _unwrap(self.service.delete_task(task_id), DELETE_FALLBACK)
        except ApiError as exc:
            self._fail(exc, DELETE_FALLBACK)
            return False
        finally:
            self.deleting_id = None

        self.tasks = [task for task in self.tasks if task.id != task_id]
        self.toaster.success('Task deleted successfully!')
        return True

    def _fail(self, exc, fallback):
        message = error_message(exc, fallback)
        logger.warning('%s: %s', fallback, message)
        self.error = message
        self.toaster.error(message)

    def render(self):
        lines = ['Task Manager', 'Organize your tasks efficiently', '']
        button = 'Adding...' if self.loading else 'Add Task'
        if not self.can_submit:
            button += ' (disabled)'
        lines.append('> %s  [%s]' % (self.title_input or 'Enter a new task...', button))
        lines.append('')

        if self.error:
            lines.append('! %s' % self.error)
            lines.append('')

        if self.loading and not self.tasks:
            lines.append('Loading tasks...')
        elif not self.tasks:
            lines.append('No tasks yet. Add one above!')
        else:
            for number, task in enumerate(self.tasks, 1):
                control = 'Delete' if self.can_delete(task.id) else 'Deleting...'
                lines.append('%2d. %s  [%s]' % (number, task.title, control))
                lines.append('    Created: %s' % format_created(task.created_at))
            lines.append('')
            lines.append('Total tasks: %d' % len(self.tasks))

        for note in self.toaster.active():
            marker = '+' if note.kind == 'success' else 'x'
            lines.append('[%s] %s' % (marker, note.text))
        return lines


HELP_TEXT = 'Commands: add <title> | del <number> | help | quit'


class TaskBoardCLI:
    def __init__(self, board, input_fn=input, output=print):
        self.board = board
        self.input_fn = input_fn
        self.output = output

    def draw(self):
        for line in self.board.render():
            self.output(line)

    def handle(self, line):
        """Run one command. Returns False when the user asked to quit."""
        command, _, argument = line.strip().partition(' ')
        command = command.lower()

        if command in ('q', 'quit', 'exit'):
            return False
        if command in ('a', 'add'):
            self.board.submit(argument)
        elif command in ('d', 'del', 'delete'):
            self._delete_row(argument)
        elif command in ('', 'h', 'help'):
            self.output(HELP_TEXT)
        else:
            self.output('Unknown command %r. %s' % (command, HELP_TEXT))
        return True

    def _delete_row(self, argument):
        try:
            index = int(argument) - 1
        except ValueError:
            self.output('Usage: del <number>')
            return
        if not 0 <= index < len(self.board.tasks):
            self.output('No task number %s' % argument)
            return
        self.board.delete(self.board.tasks[index].id)

    def run(self):
        self.board.load()
        self.draw()
        self.output(HELP_TEXT)
        while True:
            try:
                line = self.input_fn('> ')
            except (EOFError, KeyboardInterrupt):
                self.output('')
                break
            if not self.handle(line):
                break
            self.draw()


def main(argv=None):
    parser = argparse.ArgumentParser(description='Terminal client for the task manager API')
    parser.add_argument('--api-url', help='API base URL, e.g. http://localhost:5000/api '
                                          '(default: $TASKS_API_URL)')
    args = parser.parse_args(argv)

    setup_logging(os.getenv('LOG_LEVEL', 'WARNING'))

    api_url = args.api_url or load_api_url()
    if not api_url:
        parser.error('no API URL given; pass --api-url or set TASKS_API_URL')

    board = TaskBoard(TaskService(api_url))
    TaskBoardCLI(board).run()


if __name__ == '__main__':
    main()
