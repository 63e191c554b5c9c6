from .html_splitter import HtmlSplitter, Fragment, ContentUnit, split_content

__all__ = ['HtmlSplitter', 'Fragment', 'ContentUnit', 'split_content']
