from tests.data.qemuconf.cloudinit import CLOUDINIT_WIRE
from tests.data.qemuconf.disks import DISKS_WIRE

# Body of GET /nodes/{node}/qemu/100/config for a linked clone of template 110.
GUEST_WIRE = {
    "agent": "1,type=virtio",
    "balloon": 1024,
    "boot": "order=scsi0;ide2;net0",
    "cores": 2,
    "cpu": "host,flags=+aes;-pcid",
    "description": "front end\n",
    "digest": "3f3c8d0c0b6e4e1e9f3a1d2c5b7a9e8f6d4c2b1a",
    "hostpci0": "mapping=gpu",
    "memory": "2048",
    "meta": "creation-qemu=8.1.5,ctime=1718000000",
    "name": "web01",
    "net0": "virtio=BC:24:11:2E:C5:7A,bridge=vmbr0,firewall=1,queues=4,tag=10",
    "numa": 0,
    "rng0": "source=/dev/urandom,max_bytes=1024,period=1000",
    "serial0": "socket",
    "sockets": 1,
    "tags": "prod;web",
    "tpmstate0": "local-lvm:vm-100-disk-3,size=4M,version=v2.0",
    "usb0": "spice",
    **CLOUDINIT_WIRE,
    **DISKS_WIRE,
}
