"""
services/ - Business Logic Layer
================================
Recurrence and amount calculations, aggregation, reminder scheduling and
the subscription lifecycle. Everything except the lifecycle service and
the delivery backend is pure and stateless.
"""
