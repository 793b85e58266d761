"""DNS over UDP for the served zone, using dnspython for the wire format."""

import asyncio
import logging

import dns.exception
import dns.flags
import dns.message
import dns.name
import dns.rcode
import dns.rdataclass
import dns.rdatatype
import dns.rrset

from nameserver.resolver import Answer, resolve

log = logging.getLogger("tailnet-dns.dns")


def encode_answer(response: dns.message.Message, answer: Answer):
    """Copy a resolver answer into ``response``.

    Address records without an address cannot be put on the wire and are
    left out, so an alias whose target lacks the family gets just the CNAME.
    """
    response.set_rcode(answer.rcode)
    for record in answer.records:
        if record.value is None:
            continue
        rrset = dns.rrset.from_text(
            record.name,
            record.ttl,
            dns.rdataclass.IN,
            record.rdtype,
            str(record.value),
        )
        response.answer.append(rrset)


def handle_datagram(data: bytes, config, store) -> bytes | None:
    """Answer one wire-format query. Returns None if it can't be parsed."""
    try:
        query = dns.message.from_wire(data)
    except dns.exception.DNSException as e:
        log.warning("Failed to parse DNS query: %s", e)
        return None

    response = dns.message.make_response(query)
    response.flags |= dns.flags.AA

    if not query.question:
        log.warning("Received query without question section")
        response.set_rcode(dns.rcode.FORMERR)
        return response.to_wire()

    question = query.question[0]
    zone = dns.name.from_text(config.zone)
    if not question.name.is_subdomain(zone):
        log.warning("Refusing query outside %s: %s", zone, question.name)
        response.set_rcode(dns.rcode.REFUSED)
        return response.to_wire()

    answer = resolve(
        store,
        question.name.to_text(),
        question.rdtype,
        config.zone,
        config.ttl_seconds,
    )
    encode_answer(response, answer)
    log.debug(
        "%s %s -> %s, %d record(s)%s",
        question.name,
        dns.rdatatype.to_text(question.rdtype),
        dns.rcode.to_text(answer.rcode),
        len(response.answer),
        " (incomplete)" if answer.incomplete else "",
    )
    return response.to_wire()


class DnsServerProtocol(asyncio.DatagramProtocol):
    """Serves lookups against whatever registry the store holds right now."""

    def __init__(self, config, store):
        self.config = config
        self.store = store
        self.transport = None

    def connection_made(self, transport):
        self.transport = transport

    def datagram_received(self, data: bytes, addr):
        try:
            reply = handle_datagram(data, self.config, self.store)
        except Exception:
            log.exception("Error answering DNS query from %s", addr)
            return
        if reply is not None:
            self.transport.sendto(reply, addr)

    def error_received(self, exc):
        log.warning("UDP error: %s", exc)


async def start_dns_server(config, store) -> asyncio.DatagramTransport:
    loop = asyncio.get_running_loop()
    transport, _ = await loop.create_datagram_endpoint(
        lambda: DnsServerProtocol(config, store),
        local_addr=(config.listen_host, config.listen_port),
        reuse_port=True,
    )
    log.info(
        "DNS server listening on UDP [%s]:%d for zone %s",
        config.listen_host, config.listen_port, config.zone,
    )
    return transport
