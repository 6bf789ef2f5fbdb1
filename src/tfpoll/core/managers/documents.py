"""Decoding of the XML documents a job carries.

- the dispatch descriptor written when the job was sent to Testing Farm
- the results.xml fetched from the request's artifacts

Both come from outside the process, so they are parsed with defusedxml.
"""

from typing import List, Optional

from defusedxml import ElementTree
from defusedxml.common import DefusedXmlException

from tfpoll.core.exceptions import DispatchDescriptorError, DocumentDecodeError
from tfpoll.core.models.results import LogEntry, TestPlanRecord

DISPATCH_ID_ELEMENT = "tfId"
PLAN_ELEMENT = "testsuite"
PLAN_LOGS_PATH = "logs/log"


def _fromstring(raw: bytes, source: Optional[str], error_type: type[DocumentDecodeError]):
    try:
        return ElementTree.fromstring(raw)
    except (ElementTree.ParseError, DefusedXmlException) as error:
        raise error_type(
            "Malformed XML document",
            source=source,
            diagnostic=str(error),
        ) from error


def parse_dispatch(raw: bytes, source: Optional[str] = None) -> str:
    """Return the Testing Farm request id recorded in a dispatch descriptor."""
    root = _fromstring(raw, source, DispatchDescriptorError)
    element = root.find(DISPATCH_ID_ELEMENT)
    request_id = (element.text or "").strip() if element is not None else ""
    if not request_id:
        raise DispatchDescriptorError(
            f"Dispatch descriptor has no <{DISPATCH_ID_ELEMENT}> request id",
            source=source,
        )
    return request_id


def parse_results(raw: bytes, source: Optional[str] = None) -> List[TestPlanRecord]:
    """Decode results.xml into plan records, in document order.

    Only direct `testsuite` children of the root are plans; each plan's log
    references live under `logs/log`.
    """
    root = _fromstring(raw, source, DocumentDecodeError)
    plans: List[TestPlanRecord] = []
    for suite in root.findall(PLAN_ELEMENT):
        logs = [
            LogEntry(name=log.get("name", ""), href=log.get("href", ""))
            for log in suite.findall(PLAN_LOGS_PATH)
        ]
        plans.append(TestPlanRecord(name=suite.get("name", ""), logs=logs))
    return plans
