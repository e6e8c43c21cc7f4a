"""
collegeadmin: college administration dashboard (students, courses, faculty,
schedules, enrollments) over a remote or mock record store.
"""
