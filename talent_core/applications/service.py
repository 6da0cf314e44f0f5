from __future__ import annotations

from .queries import list_available_work_units, list_review_queue
from .review import resolve
from .submission import register_work_unit, submit_application


class ApplicationService:
    register_work_unit = staticmethod(register_work_unit)
    submit_application = staticmethod(submit_application)
    resolve = staticmethod(resolve)
    list_available_work_units = staticmethod(list_available_work_units)
    list_review_queue = staticmethod(list_review_queue)
