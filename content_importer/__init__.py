"""Import articles and product reviews from the legacy site into the CMS database."""
