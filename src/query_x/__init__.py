"""Query X: batch web-page content extraction service.

Opens each requested URL in an isolated headless browser context, waits for
the page to load, scrolls it to trigger lazy content, and returns the visible
text and image references as structured results.
"""

__version__ = "0.1.0"
