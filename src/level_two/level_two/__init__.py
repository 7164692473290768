"""Level Two attendance & visitation tracker.

This package is organized by feature modules (members, records, attendance,
visitation, users, reports) with a thin Flask controller layer over
service/repository layers.
"""
