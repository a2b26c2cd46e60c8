"""
Request controllers for the members application.

Controllers take request data and the request's :class:`.MemberSession` and
:class:`.Records`, and return ``(data, status, headers)``. Rendering, and
turning the session into a cookie, is left to the routes.
"""
