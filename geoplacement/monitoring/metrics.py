from prometheus_client import Counter, Gauge, Histogram
import time

# Registry metrics
REGISTERED_NODES = Gauge(
    'geoplacement_nodes',
    'Number of registered storage nodes',
    ['status']  # 'active' or 'total'
)

# Operation metrics
OPERATION_LATENCY = Histogram(
    'geoplacement_operation_latency_seconds',
    'Time spent processing placement operations',
    ['operation'],
    buckets=[0.0005, 0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0]
)

OPERATION_COUNTER = Counter(
    'geoplacement_operations_total',
    'Total number of placement operations',
    ['operation', 'status']
)

# Batch metrics
BATCHES_STORED = Counter(
    'geoplacement_batches_stored_total',
    'Number of batch identifiers assigned to nodes'
)

DATA_BATCHES_STORED = Counter(
    'geoplacement_data_batches_stored_total',
    'Number of device data batches recorded'
)

SELECTED_NODES = Histogram(
    'geoplacement_selected_nodes',
    'Number of nodes selected per submission',
    buckets=[0, 1, 2, 3, 5, 8]
)


class MetricsCollector:
    def track_operation(self, operation_name):
        """Context manager to track operation latency and count"""
        return OperationTracker(operation_name)

    def set_node_counts(self, active_count, total_count):
        """Update registered node gauges"""
        REGISTERED_NODES.labels(status='active').set(active_count)
        REGISTERED_NODES.labels(status='total').set(total_count)

    def record_batches_stored(self, batch_count, node_count):
        BATCHES_STORED.inc(batch_count)
        SELECTED_NODES.observe(node_count)

    def record_data_batch(self):
        DATA_BATCHES_STORED.inc()


class OperationTracker:
    def __init__(self, operation_name):
        self.operation_name = operation_name
        self.start_time = None

    def __enter__(self):
        self.start_time = time.time()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        duration = time.time() - self.start_time
        OPERATION_LATENCY.labels(operation=self.operation_name).observe(duration)

        status = 'error' if exc_type else 'success'
        OPERATION_COUNTER.labels(operation=self.operation_name, status=status).inc()
