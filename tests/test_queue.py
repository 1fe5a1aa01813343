"""
Tests for the in-memory priority queue.
"""
import pytest

from app.jobs.definitions import JobType, JobPriority, QueueItemStatus
from app.jobs.queue import PriorityJobQueue

from tests.helpers import make_item


def drain_order(queue: PriorityJobQueue):
    order = []
    while True:
        item = queue.pop()
        if item is None:
            return order
        order.append(item)
        queue.finish(item)


class TestPriorityJobQueue:

    def test_dispatches_by_priority(self):
        queue = PriorityJobQueue()
        low = queue.push(make_item(JobType.ORDER_SYNC, priority=JobPriority.LOW))
        critical = queue.push(make_item(JobType.ORDER_SYNC, priority=JobPriority.CRITICAL))
        medium = queue.push(make_item(JobType.ORDER_SYNC, priority=JobPriority.MEDIUM))

        assert drain_order(queue) == [critical, medium, low]

    def test_fifo_within_priority(self):
        queue = PriorityJobQueue()
        first = queue.push(make_item(JobType.ORDER_SYNC, priority=JobPriority.HIGH))
        second = queue.push(make_item(JobType.INVENTORY_SYNC, priority=JobPriority.HIGH))

        assert drain_order(queue) == [first, second]

    def test_critical_enqueued_second_is_popped_first(self):
        queue = PriorityJobQueue()
        queue.push(make_item(JobType.INVENTORY_SYNC))
        queue.push(make_item(JobType.ONLINE_ORDER_SYNC))

        item = queue.pop()
        assert item.job_type == JobType.ONLINE_ORDER_SYNC
        assert item.status == QueueItemStatus.PROCESSING
        assert item.started_at is not None

    def test_requeue_goes_behind_same_priority(self):
        queue = PriorityJobQueue()
        a = queue.push(make_item(JobType.ORDER_SYNC, priority=JobPriority.HIGH))
        b = queue.push(make_item(JobType.ORDER_SYNC, priority=JobPriority.HIGH))
        low = queue.push(make_item(JobType.ORDER_SYNC, priority=JobPriority.LOW))

        popped = queue.pop()
        assert popped is a
        queue.requeue(a)
        assert a.status == QueueItemStatus.QUEUED

        assert drain_order(queue) == [b, a, low]

    def test_only_one_item_in_flight(self):
        queue = PriorityJobQueue()
        queue.push(make_item(JobType.ORDER_SYNC))
        queue.push(make_item(JobType.CUSTOMER_SYNC))

        first = queue.pop()
        assert queue.in_flight is first
        with pytest.raises(RuntimeError):
            queue.pop()

        queue.finish(first)
        assert queue.in_flight is None
        assert queue.pop() is not None

    def test_pending_lists_dispatch_order_without_popping(self):
        queue = PriorityJobQueue()
        queue.push(make_item(JobType.INVENTORY_SYNC))
        queue.push(make_item(JobType.POS_ORDER_SYNC))
        queue.push(make_item(JobType.ORDER_SYNC))

        pending = queue.pending()
        assert [i.job_type for i in pending] == [
            JobType.POS_ORDER_SYNC, JobType.ORDER_SYNC, JobType.INVENTORY_SYNC,
        ]
        assert len(queue) == 3

    def test_has_queued_ignores_in_flight_item(self):
        queue = PriorityJobQueue()
        queue.push(make_item(JobType.CUSTOMER_SYNC))
        assert queue.has_queued(JobType.CUSTOMER_SYNC)

        queue.pop()
        assert not queue.has_queued(JobType.CUSTOMER_SYNC)

    def test_clear_drops_everything(self):
        queue = PriorityJobQueue()
        queue.push(make_item(JobType.CUSTOMER_SYNC))
        queue.push(make_item(JobType.ORDER_SYNC))
        queue.pop()

        assert queue.clear() == 1
        assert len(queue) == 0
        assert queue.in_flight is None

    def test_to_dict_uses_plain_values(self):
        item = make_item(JobType.POS_ORDER_SYNC)
        data = item.to_dict()
        assert data["job_type"] == "pos_order_sync"
        assert data["priority"] == "critical"
        assert data["source"] == "system"
        assert data["status"] == "queued"
