"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

# Collection names. These are part of the storage contract.
STUDENTS = "students"
CLASS_GROUPS = "rombel"
PROGRAM_SUMMARIES = "program_keahlian"
CLASS_SESSIONS = "classes"
ATTENDANCE_MONTHLY = "attendance_monthly"
ATTENDANCE_SEMESTER = "attendance_semester"

DEFAULT_MAX_BATCH_WRITES = 500
VALID_GRADES = (10, 11, 12)

# Program summary for students whose program is not known.
NO_PROGRAM = "Tanpa Program"
