#!/usr/bin/env python3

import argparse
import json
import re
import sys
from http.server import BaseHTTPRequestHandler, HTTPServer
from socketserver import ThreadingMixIn

import ballot
from ballot import snapshot
from ballot.ballot import Ballot
from ballot.exceptions import BallotException
from ballot.settings import Settings

_VOTER_PATH = re.compile(r"^/voters/(?P<address>[^/]+)$")


def _parse_cli_args():
    return _parse_args(sys.argv[1:])


def _parse_args(argv):
    parser = argparse.ArgumentParser(description="Serve a ballot as an HTTP JSON service")
    parser.add_argument("--version", action="version", version=f"{ballot.__version__}")
    parser.add_argument(
        "-b",
        help="Address to bind JSON server on, default: localhost:8000",
        default="localhost:8000",
        dest="bind_address",
    )
    parser.add_argument("--state", help="Ballot snapshot file to serve")
    parser.add_argument("--proposals", help="Comma separated proposal names for a new ballot")
    parser.add_argument("--chairperson", help="Chairperson address for a new ballot")
    parser.add_argument(
        "--strict-delegation",
        help="Reject delegations to voters without the right to vote",
        action="store_true",
        default=None,
    )

    args = parser.parse_args(argv)
    settings = Settings(strict_delegation=args.strict_delegation)

    if args.state:
        b = snapshot.load(args.state, settings=settings)
    elif args.proposals and args.chairperson:
        b = Ballot(args.proposals.split(","), args.chairperson, settings=settings)
    else:
        parser.error("provide either --state or both --proposals and --chairperson")

    if ":" in args.bind_address:
        runserver(b, *args.bind_address.split(":"))
    else:
        print('Provide bind address in "{address}:{port}" format')


def _failure(e: BallotException):
    return {"status": "failed", "error": e.tag, "message": str(e)}, 400


class BallotRequestHandler(BaseHTTPRequestHandler):
    def send_404(self):
        self.send_response(404)
        self.end_headers()
        return

    def send_cors_all(self):
        self.send_header("Access-Control-Allow-Origin", "*")
        self.send_header("Access-Control-Allow-Headers", "X-Requested-With, Content-type")

    def send_json(self, response, status_code):
        self.send_response(status_code)
        self.send_header("Content-type", "application/json")
        self.send_cors_all()
        self.end_headers()
        self.wfile.write(json.dumps(response).encode())

    @property
    def ballot(self) -> Ballot:
        return self.server.ballot

    def do_OPTIONS(self):
        self.send_response(200)
        self.send_cors_all()
        self.end_headers()

    def do_GET(self):
        if self.path == "/":
            self.send_response(200)
            self.send_cors_all()
            self.end_headers()
            self.wfile.write(f"Ballot. Version: {ballot.__version__}\n".encode())
        elif self.path == "/proposals":
            self.send_json(self._proposals(), 200)
        elif self.path == "/winner":
            self.send_json(self._winner(), 200)
        elif (m := _VOTER_PATH.match(self.path)) is not None:
            self.send_json(*self._voter(m.group("address")))
        else:
            self.send_404()

        return

    def do_POST(self):
        handlers = {
            "/give_right_to_vote": self._give_right_to_vote,
            "/vote": self._vote,
            "/delegate": self._delegate,
        }
        if self.path not in handlers:
            self.send_404()
            return

        content_len = int(self.headers.get("content-length", 0))
        post_body = self.rfile.read(content_len)
        try:
            data = json.loads(post_body)
        except json.JSONDecodeError as e:
            self.send_json({"status": "failed", "message": f"Invalid JSON: {e}"}, 400)
            return
        if not isinstance(data, dict):
            self.send_json({"status": "failed", "message": "Request body must be an object"}, 400)
            return

        response, status_code = handlers[self.path](data)
        self.send_json(response, status_code)

    def _proposals(self):
        return {
            "chairperson": self.ballot.chairperson,
            "proposals": [
                {"index": i, "name": name, "vote_count": count}
                for i, (name, count) in enumerate(self.ballot.results())
            ],
        }

    def _winner(self):
        index = self.ballot.winning_proposal()
        return {"winning_proposal": index, "winner_name": self.ballot.proposal(index).text}

    def _voter(self, address):
        try:
            v = self.ballot.voter(address)
        except BallotException as e:
            return _failure(e)
        return {"weight": v.weight, "voted": v.voted, "delegate": v.delegate, "vote": v.vote}, 200

    def _transact(self, data, fn, key):
        caller = data.get("from")
        if not caller:
            return {"status": "failed", "message": 'No "from" key supplied'}, 400
        if key not in data:
            return {"status": "failed", "message": f'No "{key}" key supplied'}, 400

        try:
            receipt = fn(caller, data[key])
        except BallotException as e:
            return _failure(e)

        return {"status": "success", "receipt": receipt.as_dict()}, 200

    def _give_right_to_vote(self, data):
        return self._transact(data, self.ballot.give_right_to_vote, "voter")

    def _vote(self, data):
        return self._transact(data, self.ballot.vote, "proposal")

    def _delegate(self, data):
        return self._transact(data, self.ballot.delegate, "to")


class BallotHTTPServer(ThreadingMixIn, HTTPServer):
    """Handle requests in a separate thread."""

    def __init__(self, server_address, handler_class, ballot_: Ballot):
        # requests are serialized by the ballot's own lock
        self.ballot = ballot_
        super().__init__(server_address, handler_class)


def runserver(ballot_: Ballot, host="", port=8000):
    server_address = (host, int(port))
    httpd = BallotHTTPServer(server_address, BallotRequestHandler, ballot_)
    print(f"Listening on http://{host}:{port}")
    httpd.serve_forever()
