from rest_framework import status
from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response


def success(data=None, message=None, status_code=status.HTTP_200_OK):
    """Wrap a payload in the {"success": true, "data": ..., "message": ...} envelope."""
    body = {"success": True}
    if data is not None:
        body["data"] = data
    if message:
        body["message"] = message
    return Response(body, status=status_code)


class EnvelopePagination(PageNumberPagination):
    page_size = 10
    page_size_query_param = "page_size"
    max_page_size = 100

    def get_paginated_response(self, data):
        return success({
            "items": data,
            "total": self.page.paginator.count,
            "page": self.page.number,
            "page_size": self.get_page_size(self.request),
            "total_pages": self.page.paginator.num_pages,
        })
