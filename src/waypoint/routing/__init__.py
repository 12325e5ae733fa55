"""Routing — path patterns, the route tree, and the matchers that walk it.

``matcher`` resolves synchronously against whatever is already loaded;
``branch`` resolves asynchronously, loading deferred content through
``resolver`` as it descends.
"""
