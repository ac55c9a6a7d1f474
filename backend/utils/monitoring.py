"""Performance monitoring for the density map API"""

import time
from typing import Dict, Any, Optional, List
import structlog
from datetime import datetime
import threading
from collections import deque, Counter

from flask import current_app, g, request

logger = structlog.get_logger(__name__)

EXTENSION_KEY = "performance_monitor"

class PerformanceMonitor:
    """Track API performance and upstream failures"""

    def __init__(self, alert_threshold_seconds: float = 2.0):
        self.alert_threshold = alert_threshold_seconds
        self.metrics = {
            'total_requests': 0,
            'slow_requests': 0,
            'errors': 0,
            'total_response_time': 0.0
        }
        self.upstream_failures = Counter()
        self.recent_requests = deque(maxlen=1000)  # Keep last 1000 requests
        self._lock = threading.Lock()

    def record_request(self, endpoint: str, method: str,
                      response_time: float, status_code: int):
        """Record a request's performance metrics"""
        slow = response_time > self.alert_threshold

        with self._lock:
            self.metrics['total_requests'] += 1
            self.metrics['total_response_time'] += response_time

            if slow:
                self.metrics['slow_requests'] += 1
                logger.warning("Slow request detected",
                             endpoint=endpoint,
                             method=method,
                             response_time=response_time,
                             threshold=self.alert_threshold)

            if status_code >= 500:
                self.metrics['errors'] += 1

            self.recent_requests.append({
                'timestamp': datetime.utcnow(),
                'endpoint': endpoint,
                'method': method,
                'response_time': response_time,
                'status_code': status_code,
                'slow': slow
            })

    def record_upstream_failure(self, line: str, kind: str):
        """Count an engine failure; kind is network, status or parse"""
        with self._lock:
            self.upstream_failures[f"{line}.{kind}"] += 1

    def get_metrics(self) -> Dict[str, Any]:
        """Get current performance metrics"""
        with self._lock:
            total_requests = self.metrics['total_requests']
            if total_requests == 0:
                return {'status': 'no requests yet', 'upstream_failures': dict(self.upstream_failures)}

            avg_response_time = self.metrics['total_response_time'] / total_requests
            slow_percentage = (self.metrics['slow_requests'] / total_requests) * 100
            error_rate = (self.metrics['errors'] / total_requests) * 100

            return {
                'total_requests': total_requests,
                'average_response_time': round(avg_response_time, 3),
                'slow_requests': self.metrics['slow_requests'],
                'slow_percentage': round(slow_percentage, 2),
                'error_rate': round(error_rate, 2),
                'upstream_failures': dict(self.upstream_failures),
                'alert_threshold': self.alert_threshold,
                'health_status': self._calculate_health_status(slow_percentage, error_rate)
            }

    def get_slow_endpoints(self) -> List[Dict]:
        """Get endpoints that are consistently slow"""
        with self._lock:
            endpoint_stats = {}

            for req in self.recent_requests:
                stats = endpoint_stats.setdefault(req['endpoint'], {'count': 0, 'total_time': 0.0, 'slow_count': 0})
                stats['count'] += 1
                stats['total_time'] += req['response_time']
                if req['slow']:
                    stats['slow_count'] += 1

            slow_endpoints = []
            for endpoint, stats in endpoint_stats.items():
                avg_time = stats['total_time'] / stats['count']
                if avg_time > self.alert_threshold * 0.8:  # 80% of threshold
                    slow_endpoints.append({
                        'endpoint': endpoint,
                        'average_time': round(avg_time, 3),
                        'request_count': stats['count'],
                        'slow_count': stats['slow_count']
                    })

            return sorted(slow_endpoints, key=lambda x: x['average_time'], reverse=True)

    def _calculate_health_status(self, slow_percentage: float, error_rate: float) -> str:
        """Calculate overall health status"""
        if error_rate > 5 or slow_percentage > 20:
            return "unhealthy"
        elif error_rate > 2 or slow_percentage > 10:
            return "degraded"
        else:
            return "healthy"

# Middleware for Flask
def add_performance_monitoring(app, monitor: Optional[PerformanceMonitor] = None) -> PerformanceMonitor:
    """Attach a monitor to the app and time every request"""
    monitor = monitor or PerformanceMonitor(alert_threshold_seconds=2.0)
    app.extensions[EXTENSION_KEY] = monitor

    @app.before_request
    def before_request():
        g.start_time = time.time()

    @app.after_request
    def after_request(response):
        if hasattr(g, 'start_time'):
            response_time = time.time() - g.start_time

            monitor.record_request(
                endpoint=request.endpoint or request.path,
                method=request.method,
                response_time=response_time,
                status_code=response.status_code
            )

            # Add response time header
            response.headers['X-Response-Time'] = f"{response_time:.3f}s"

        return response

    return monitor

def get_monitor() -> PerformanceMonitor:
    """Monitor of the current app"""
    return current_app.extensions[EXTENSION_KEY]

def get_performance_report(monitor: PerformanceMonitor) -> Dict[str, Any]:
    """Get comprehensive performance report"""
    return {
        'metrics': monitor.get_metrics(),
        'slow_endpoints': monitor.get_slow_endpoints(),
        'timestamp': datetime.utcnow().isoformat()
    }
