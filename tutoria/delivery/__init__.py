"""
Terminal front-end for tutors and students.
"""
