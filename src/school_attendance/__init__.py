"""School Attendance package.

This package is organized by feature modules (roster, classes, attendance,
recap, ...) with a thin Flask controller layer and service layers that talk
to a document store.
"""
