from datetime import datetime, timedelta
import time
from requests.exceptions import (HTTPError, Timeout)
from requests.auth import HTTPBasicAuth
import requests
from singer import metrics
import singer
import backoff

# Keep at least 10ms between two calls against the same site.
TIME_BETWEEN_REQUESTS = timedelta(microseconds=10e3)

LOGGER = singer.get_logger()

# timeout requests after 300 seconds
REQUEST_TIMEOUT = 300

BASE_URL = "https://{}.atlassian.net"
API_PATH = "/rest/api/3/"

SEARCH_FIELDS = ["assignee", "labels", "components", "issuetype", "summary",
                 "status", "project", "parent"]

SUCCESS_STATUS_CODES = (200, 201, 204)

DEFAULT_PAGE_SIZE = 50

class JiraError(Exception):
    def __init__(self, message=None, response=None):
        super().__init__(message)
        self.message = message
        self.response = response

class JiraBackoffError(JiraError):
    pass

class JiraBadRequestError(JiraError):
    pass

class JiraUnauthorizedError(JiraError):
    pass

class JiraForbiddenError(JiraError):
    pass

class JiraNotFoundError(JiraError):
    pass

class JiraConflictError(JiraError):
    pass

class JiraRateLimitError(JiraBackoffError):
    pass

class JiraInternalServerError(JiraError):
    pass

class JiraBadGatewayError(JiraError):
    pass

class JiraServiceUnavailableError(JiraBackoffError):
    pass

class JiraGatewayTimeoutError(JiraError):
    pass

def should_retry_httperror(exception):
    """ Retry 500-range errors. """
    # An ConnectionError is thrown without a response
    if exception.response is None:
        return True

    return 500 <= exception.response.status_code < 600

ERROR_CODE_EXCEPTION_MAPPING = {
    400: {
        "raise_exception": JiraBadRequestError,
        "message": "A validation exception has occurred."
    },
    401: {
        "raise_exception": JiraUnauthorizedError,
        "message": "Invalid authorization credentials."
    },
    403: {
        "raise_exception": JiraForbiddenError,
        "message": "User does not have permission to access the resource."
    },
    404: {
        "raise_exception": JiraNotFoundError,
        "message": "The resource you have specified cannot be found."
    },
    409: {
        "raise_exception": JiraConflictError,
        "message": "The request does not match our state in some way."
    },
    429: {
        "raise_exception": JiraRateLimitError,
        "message": "The API rate limit for your organisation/application pairing has been exceeded."
    },
    500: {
        "raise_exception": JiraInternalServerError,
        "message": "The server encountered an unexpected condition which prevented" \
            " it from fulfilling the request."
    },
    502: {
        "raise_exception": JiraBadGatewayError,
        "message": "Server received an invalid response."
    },
    503: {
        "raise_exception": JiraServiceUnavailableError,
        "message": "API service is currently unavailable."
    },
    504: {
        "raise_exception": JiraGatewayTimeoutError,
        "message": "API service time out, please check Jira server."
    }
}

def error_message(response_json, status_code):
    # Jira puts field level problems under "errors" and the rest under "errorMessages"
    messages = list(response_json.get("errorMessages") or [])
    messages.extend("{}: {}".format(field, problem)
                    for field, problem in (response_json.get("errors") or {}).items())
    if messages:
        return messages[0] if len(messages) == 1 else "; ".join(messages)
    return ERROR_CODE_EXCEPTION_MAPPING.get(status_code, {}).get("message", "Unknown Error")

def check_status(response):
    if response.status_code in SUCCESS_STATUS_CODES:
        return
    # Forming a response message for raising custom exception
    try:
        response_json = response.json()
    except Exception: # pylint: disable=broad-except
        response_json = {}
    if not isinstance(response_json, dict):
        response_json = {}
    message = "HTTP-error-code: {}, Error: {}".format(
        response.status_code, error_message(response_json, response.status_code))
    exc = ERROR_CODE_EXCEPTION_MAPPING.get(
        response.status_code, {}).get("raise_exception", JiraError)
    raise exc(message, response) from None

def get_request_timeout(config):
    # Get `request_timeout` value from config
    config_request_timeout = config.get('request_timeout')

    # if config request_timeout is other than 0, "0", or "" then use request_timeout
    if config_request_timeout and float(config_request_timeout):
        request_timeout = float(config_request_timeout)
    else:
        # If value is 0, "0", "", or not passed then it set default to 300 seconds
        request_timeout = REQUEST_TIMEOUT
    return request_timeout

class Client():
    def __init__(self, config):
        self.session = requests.Session()
        self.next_request_at = datetime.now()
        self.user_agent = config.get("user_agent")
        self.timeout = get_request_timeout(config)
        self.subdomain = config.get("subdomain")
        self.site_url = BASE_URL.format(self.subdomain)
        self.auth = HTTPBasicAuth(config.get("email"), config.get("token"))
        LOGGER.debug("Using Basic Auth API authentication against %s", self.site_url)

    def url(self, path):
        return self.site_url + API_PATH + path.lstrip("/")

    def browse_url(self, issue_key):
        return "{}/browse/{}".format(self.site_url, issue_key)

    def _headers(self, headers):
        headers = headers.copy()
        headers["Accept"] = "application/json"
        if self.user_agent:
            headers["User-Agent"] = self.user_agent
        return headers

    @backoff.on_exception(backoff.expo,
                          (requests.exceptions.ConnectionError, HTTPError, Timeout),
                          jitter=None,
                          max_tries=6,
                          giveup=lambda e: not should_retry_httperror(e))
    def send(self, method, path, headers={}, **kwargs):
        request = requests.Request(method,
                                   self.url(path),
                                   auth=self.auth,
                                   headers=self._headers(headers),
                                   **kwargs)
        return self.session.send(request.prepare(), timeout=self.timeout)

    @backoff.on_exception(backoff.constant,
                          JiraBackoffError,
                          max_tries=10,
                          interval=60)
    def request(self, endpoint, *args, **kwargs):
        wait = (self.next_request_at - datetime.now()).total_seconds()
        if wait > 0:
            time.sleep(wait)
        with metrics.http_request_timer(endpoint) as timer:
            response = self.send(*args, **kwargs)
            self.next_request_at = datetime.now() + TIME_BETWEEN_REQUESTS
            timer.tags[metrics.Tag.http_status_code] = response.status_code
        check_status(response)
        if response.status_code == 204:
            return None
        return response.json()

    def get_myself(self):
        return self.request("myself", "GET", "myself")

    def get_issue(self, issue_key):
        return self.request("issue", "GET", "issue/{}".format(issue_key))

    def create_issue(self, fields):
        LOGGER.info("Creating %s in project %s",
                    fields["issuetype"]["name"], fields["project"]["key"])
        return self.request("issue", "POST", "issue",
                            json={"fields": fields, "update": {}})

    def assign_issue(self, issue_key, account_id):
        LOGGER.info("Assigning %s to %s", issue_key, account_id)
        self.request("assignee", "PUT", "issue/{}/assignee".format(issue_key),
                     json={"accountId": account_id})

    def transition_issue(self, issue_key, transition_id):
        LOGGER.info("Transitioning %s with transition %s", issue_key, transition_id)
        self.request("transitions", "POST", "issue/{}/transitions".format(issue_key),
                     json={"transition": {"id": str(transition_id)}})

    def search_issues(self, jql, fields=None):
        params = {"jql": jql,
                  "fields": ",".join(fields or SEARCH_FIELDS),
                  "maxResults": DEFAULT_PAGE_SIZE}
        return CursorPaginator(self).issues("search", "GET", "search/jql", params=params)

class CursorPaginator():
    def __init__(self, client, items_key="issues"):
        self.client = client
        self.items_key = items_key
        self.next_page_token = None

    def pages(self, *args, **kwargs):
        """Returns a generator which yields pages of data, following
        `nextPageToken` until Jira reports `isLast`.

        :param args: Passed to Client.request
        :param kwargs: Passed to Client.request
        """
        params = kwargs.pop("params", {}).copy()
        while True:
            if self.next_page_token:
                params["nextPageToken"] = self.next_page_token
            response = self.client.request(*args, params=dict(params), **kwargs)
            page = response.get(self.items_key) or []
            if page:
                yield page

            self.next_page_token = response.get("nextPageToken")
            if response.get("isLast") or not self.next_page_token:
                break
            LOGGER.info("Fetching the next page of %s", self.items_key)

    def issues(self, *args, **kwargs):
        for page in self.pages(*args, **kwargs):
            for issue in page:
                yield issue
